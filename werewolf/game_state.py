"""
Game state container and the guarded state updates shared by every component.

GameState is an immutable value: each operation returns a new instance
built with dataclasses.replace, so a caller rendering mid-update never
sees a half-applied change.
"""

import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import GameOverError, InvariantViolation
from .models import (
    DayVote,
    EliminationMethod,
    EliminationRecord,
    EventType,
    GameEvent,
    GameSettings,
    InvestigationRecord,
    NightAction,
    Phase,
    Player,
    PlayerStatus,
)
from .roles import Allegiance, RoleType


@dataclass(frozen=True)
class GameState:
    """
    Manages the complete state of a Werewolf game.

    Single owner: exactly one driving caller holds a given game's state
    and serialises every call against it.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    lobby_code: str = ""
    host_player_id: Optional[str] = None

    phase: Phase = Phase.LOBBY
    day_number: int = 0
    night_number: int = 0

    players: Tuple[Player, ...] = ()
    alive_players: Tuple[str, ...] = ()
    dead_players: Tuple[str, ...] = ()

    current_phase_start_time: float = 0.0
    phase_time_limit: int = 0

    # Reset on entry to each Night / Voting phase
    night_actions: Tuple[NightAction, ...] = ()
    day_votes: Tuple[DayVote, ...] = ()
    voting_open: bool = False

    events: Tuple[GameEvent, ...] = ()
    elimination_records: Tuple[EliminationRecord, ...] = ()

    # Cross-phase memory the rules need
    vote_history: Tuple[DayVote, ...] = ()
    investigation_log: Tuple[InvestigationRecord, ...] = ()
    last_protected: Dict[str, str] = field(default_factory=dict)
    used_potions: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    pending_hunter_ids: Tuple[str, ...] = ()
    tanner_winners: Tuple[str, ...] = ()

    game_over: bool = False
    winner: Optional[Allegiance] = None

    settings: GameSettings = field(default_factory=GameSettings)
    village_name: str = ""
    village_backstory: str = ""
    created_at: float = 0.0
    updated_at: float = 0.0

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def get_alive_players(self) -> List[Player]:
        """Get list of alive players."""
        return [p for p in self.players if p.is_alive()]

    def get_player_by_id(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def get_players_by_role(self, role: RoleType, alive_only: bool = True) -> List[Player]:
        """Get players with a specific role (alive ones by default)."""
        pool = self.get_alive_players() if alive_only else list(self.players)
        return [p for p in pool if p.role == role]

    def is_alive(self, player_id: Optional[str]) -> bool:
        player = self.get_player_by_id(player_id) if player_id else None
        return player is not None and player.is_alive()

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict:
        """Convert game state to a plain JSON-compatible dictionary."""
        return {
            "id": self.id,
            "lobby_code": self.lobby_code,
            "host_player_id": self.host_player_id,
            "phase": self.phase.value,
            "day_number": self.day_number,
            "night_number": self.night_number,
            "players": [p.to_dict() for p in self.players],
            "alive_players": list(self.alive_players),
            "dead_players": list(self.dead_players),
            "current_phase_start_time": self.current_phase_start_time,
            "phase_time_limit": self.phase_time_limit,
            "night_actions": [a.to_dict() for a in self.night_actions],
            "day_votes": [v.to_dict() for v in self.day_votes],
            "voting_open": self.voting_open,
            "events": [e.to_dict() for e in self.events],
            "elimination_records": [r.to_dict() for r in self.elimination_records],
            "vote_history": [v.to_dict() for v in self.vote_history],
            "investigation_log": [r.to_dict() for r in self.investigation_log],
            "last_protected": dict(self.last_protected),
            "used_potions": {k: list(v) for k, v in self.used_potions.items()},
            "pending_hunter_ids": list(self.pending_hunter_ids),
            "tanner_winners": list(self.tanner_winners),
            "game_over": self.game_over,
            "winner": self.winner.value if self.winner else None,
            "settings": self.settings.to_dict(),
            "village_name": self.village_name,
            "village_backstory": self.village_backstory,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "GameState":
        winner = data.get("winner")
        return cls(
            id=data["id"],
            lobby_code=data.get("lobby_code", ""),
            host_player_id=data.get("host_player_id"),
            phase=Phase(data["phase"]),
            day_number=data.get("day_number", 0),
            night_number=data.get("night_number", 0),
            players=tuple(Player.from_dict(p) for p in data.get("players", [])),
            alive_players=tuple(data.get("alive_players", [])),
            dead_players=tuple(data.get("dead_players", [])),
            current_phase_start_time=data.get("current_phase_start_time", 0.0),
            phase_time_limit=data.get("phase_time_limit", 0),
            night_actions=tuple(NightAction.from_dict(a) for a in data.get("night_actions", [])),
            day_votes=tuple(DayVote.from_dict(v) for v in data.get("day_votes", [])),
            voting_open=data.get("voting_open", False),
            events=tuple(GameEvent.from_dict(e) for e in data.get("events", [])),
            elimination_records=tuple(
                EliminationRecord.from_dict(r) for r in data.get("elimination_records", [])
            ),
            vote_history=tuple(DayVote.from_dict(v) for v in data.get("vote_history", [])),
            investigation_log=tuple(
                InvestigationRecord.from_dict(r) for r in data.get("investigation_log", [])
            ),
            last_protected=dict(data.get("last_protected", {})),
            used_potions={k: tuple(v) for k, v in data.get("used_potions", {}).items()},
            pending_hunter_ids=tuple(data.get("pending_hunter_ids", [])),
            tanner_winners=tuple(data.get("tanner_winners", [])),
            game_over=data.get("game_over", False),
            winner=Allegiance(winner) if winner else None,
            settings=GameSettings.from_dict(data.get("settings", {})),
            village_name=data.get("village_name", ""),
            village_backstory=data.get("village_backstory", ""),
            created_at=data.get("created_at", 0.0),
            updated_at=data.get("updated_at", 0.0),
        )

    def view_for(self, viewer_id: Optional[str]) -> Dict:
        """
        Serialize the state as seen by one player.

        Hides living players' roles (a Werewolf still sees the pack),
        other players' night actions, and private events the viewer
        is not part of. Once the game is over everything is visible.
        """
        data = self.to_dict()
        if self.game_over:
            return data

        viewer = self.get_player_by_id(viewer_id) if viewer_id else None
        viewer_is_wolf = viewer is not None and viewer.role == RoleType.WEREWOLF

        for player_data in data["players"]:
            if player_data["id"] == viewer_id or player_data["status"] == PlayerStatus.DEAD.value:
                continue
            if viewer_is_wolf and player_data["role"] == RoleType.WEREWOLF.value:
                continue
            player_data["role"] = None

        data["night_actions"] = [
            a for a in data["night_actions"] if a["player_id"] == viewer_id
        ]
        data["investigation_log"] = [
            r for r in data["investigation_log"] if r["seer_id"] == viewer_id
        ]
        data["events"] = [
            e for e in data["events"]
            if e["is_public"] or (viewer_id and viewer_id in e["involved_players"])
        ]
        data["last_protected"] = {
            k: v for k, v in data["last_protected"].items() if k == viewer_id
        }
        data["used_potions"] = {
            k: v for k, v in data["used_potions"].items() if k == viewer_id
        }
        return data


# =============================================================================
# STATE UPDATES
# =============================================================================

def ensure_not_over(state: GameState):
    """Fail loudly when something tries to change a finished game."""
    if state.game_over:
        raise GameOverError(f"Game {state.id} is over; no further changes allowed")


def replace_players(state: GameState, players: Iterable[Player]) -> GameState:
    """Swap in a new roster, keeping the alive/dead indices in step."""
    players = tuple(players)
    ids = [p.id for p in players]
    if len(set(ids)) != len(ids):
        raise InvariantViolation("Player ids must be unique")
    return replace(
        state,
        players=players,
        alive_players=tuple(p.id for p in players if p.is_alive()),
        dead_players=tuple(p.id for p in players if p.status == PlayerStatus.DEAD),
    )


def update_player(state: GameState, player_id: str, **changes) -> GameState:
    """Replace one player with an updated copy."""
    return replace_players(
        state,
        [replace(p, **changes) if p.id == player_id else p for p in state.players],
    )


def kill_player(state: GameState, player_id: str, method: EliminationMethod) -> GameState:
    """
    Mark a player as dead.

    Guarded by status == Alive: killing a dead or unknown player returns
    the state unchanged, so repeated calls leave exactly one
    EliminationRecord.
    """
    player = state.get_player_by_id(player_id)
    if player is None or not player.is_alive():
        return state
    ensure_not_over(state)
    if player.role is None:
        raise InvariantViolation(f"Player {player_id} died without a role")
    if any(r.player_id == player_id for r in state.elimination_records):
        raise InvariantViolation(f"Player {player_id} already has an elimination record")

    record = EliminationRecord(
        player_id=player_id,
        role=player.role,
        day=state.day_number,
        method=EliminationMethod(method),
    )
    players = [
        replace(p, status=PlayerStatus.DEAD) if p.id == player_id else p
        for p in state.players
    ]
    return replace(
        state,
        players=tuple(players),
        alive_players=tuple(pid for pid in state.alive_players if pid != player_id),
        dead_players=state.dead_players + (player_id,),
        elimination_records=state.elimination_records + (record,),
    )


def add_event(
    state: GameState,
    event_type: EventType,
    message: str,
    involved_players: Iterable[str] = (),
    is_public: bool = True,
    timestamp: float = 0.0,
) -> GameState:
    """Append an event to the game log. The log is closed once the game is over."""
    ensure_not_over(state)
    event = GameEvent(
        id=f"evt-{len(state.events) + 1}",
        type=EventType(event_type),
        phase=state.phase,
        message=message,
        involved_players=tuple(involved_players),
        is_public=is_public,
        day_number=state.day_number,
        night_number=state.night_number,
        timestamp=timestamp,
    )
    return replace(state, events=state.events + (event,))


def latest_submissions(items, key) -> list:
    """
    Keep only the most recent submission per key.

    Highest timestamp wins; equal timestamps fall back to submission
    order, so the later entry wins. Output keeps first-seen key order.
    """
    latest = {}
    order = []
    for item in items:
        k = key(item)
        if k not in latest:
            order.append(k)
            latest[k] = item
        elif item.timestamp >= latest[k].timestamp:
            latest[k] = item
    return [latest[k] for k in order]

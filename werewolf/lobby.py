"""
Lobby and roster management.

A lobby collects human and AI players before the game starts.
initialize_game turns it into a GameState in the Lobby phase, ready for
GameEngine.start_game to deal roles.
"""

import random
import uuid
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from .errors import InvalidActionError
from .game_state import GameState, replace_players
from .models import AI_PERSONALITIES, GameSettings, Phase, Player


LOBBY_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no I, O, 0, 1
LOBBY_CODE_LENGTH = 6

LOBBY_WAITING = "Waiting"
LOBBY_IN_PROGRESS = "InProgress"
LOBBY_FINISHED = "Finished"

VILLAGE_LORE: Tuple[Dict[str, str], ...] = (
    {
        "name": "Ravencrest",
        "backstory": "A mountain village under the Frostpeaks. Since last winter's blood "
                     "moon, the wolves have come down from the peaks every night.",
    },
    {
        "name": "Thornwick",
        "backstory": "A fishing town that prospered until strange ships drifted in with "
                     "the fog. Those who stayed behind began to change.",
    },
    {
        "name": "Ashenvale",
        "backstory": "A settlement among ancient oaks. The druids warned of a curse, and "
                     "now the forest hunts the people who live in it.",
    },
    {
        "name": "Grimhollow",
        "backstory": "An old mining town, abandoned after the cave-in. The miners never "
                     "left; they only changed.",
    },
    {
        "name": "Silverbrook",
        "backstory": "A quiet riverside village, until the night the water ran red and "
                     "the howling began.",
    },
)

CHARACTER_NAMES: Tuple[str, ...] = (
    "Marcus", "Gregor", "Alaric", "Theron", "Dorian", "Kael", "Rowan", "Fenris",
    "Bjorn", "Aldric", "Elara", "Lyssa", "Mira", "Seraphina", "Kira", "Astrid",
    "Freya", "Nyx", "Isolde", "Thalia", "Raven", "Storm", "Ash", "Reed", "Sage",
    "Quinn", "River", "Ember", "Sky", "Winter",
)


@dataclass(frozen=True)
class Lobby:
    id: str
    lobby_code: str
    host_player_id: str
    game_name: str
    village_name: str
    players: Tuple[Player, ...] = ()
    settings: GameSettings = field(default_factory=GameSettings)
    is_public: bool = False
    status: str = LOBBY_WAITING
    created_at: float = 0.0

    @property
    def max_players(self) -> int:
        return self.settings.max_players

    def get_player_by_id(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "lobby_code": self.lobby_code,
            "host_player_id": self.host_player_id,
            "game_name": self.game_name,
            "village_name": self.village_name,
            "players": [p.to_dict() for p in self.players],
            "max_players": self.max_players,
            "settings": self.settings.to_dict(),
            "is_public": self.is_public,
            "status": self.status,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Lobby":
        return cls(
            id=data["id"],
            lobby_code=data["lobby_code"],
            host_player_id=data["host_player_id"],
            game_name=data.get("game_name", ""),
            village_name=data.get("village_name", ""),
            players=tuple(Player.from_dict(p) for p in data.get("players", [])),
            settings=GameSettings.from_dict(data.get("settings", {})),
            is_public=data.get("is_public", False),
            status=data.get("status", LOBBY_WAITING),
            created_at=data.get("created_at", 0.0),
        )


# =============================================================================
# IDENTIFIERS & LORE
# =============================================================================

def generate_lobby_code(rng: random.Random = None) -> str:
    """Short, unambiguous join code."""
    rng = rng or random.Random()
    return "".join(rng.choice(LOBBY_CODE_ALPHABET) for _ in range(LOBBY_CODE_LENGTH))


def generate_id(rng: random.Random = None) -> str:
    if rng is None:
        return uuid.uuid4().hex[:12]
    return "%012x" % rng.getrandbits(48)


def generate_village_lore(rng: random.Random = None) -> Dict[str, str]:
    rng = rng or random.Random()
    return dict(rng.choice(VILLAGE_LORE))


def lore_for_village(village_name: str) -> Optional[Dict[str, str]]:
    for lore in VILLAGE_LORE:
        if lore["name"] == village_name:
            return dict(lore)
    return None


def generate_character_name(taken=(), rng: random.Random = None) -> str:
    """Pick an AI name, avoiding names already at the table while any remain."""
    rng = rng or random.Random()
    free = [name for name in CHARACTER_NAMES if name not in taken]
    return rng.choice(free or list(CHARACTER_NAMES))


# =============================================================================
# LOBBY OPERATIONS
# =============================================================================

def _ensure_waiting(lobby: Lobby):
    if lobby.status != LOBBY_WAITING:
        raise InvalidActionError(f"Lobby {lobby.lobby_code} is not accepting changes")


def _ensure_room(lobby: Lobby, count: int = 1):
    if len(lobby.players) + count > lobby.max_players:
        raise InvalidActionError(
            f"Lobby {lobby.lobby_code} is full ({lobby.max_players} players max)"
        )


def create_lobby(
    host_name: str,
    settings: GameSettings = None,
    now: float = 0.0,
    rng: random.Random = None,
) -> Lobby:
    """Create a new lobby with the host as its first player."""
    if not host_name or not host_name.strip():
        raise InvalidActionError("Host name is required")
    rng = rng or random.Random()
    settings = settings or GameSettings()
    lore = generate_village_lore(rng)
    host = Player(id=generate_id(rng), name=host_name.strip(), is_host=True)
    return Lobby(
        id=generate_id(rng),
        lobby_code=generate_lobby_code(rng),
        host_player_id=host.id,
        game_name=f"{lore['name']} Werewolf",
        village_name=lore["name"],
        players=(host,),
        settings=settings,
        created_at=now,
    )


def join_lobby(lobby: Lobby, player_name: str,
               rng: random.Random = None) -> Tuple[Lobby, Player]:
    """Add a human player. Returns the updated lobby and the new player."""
    _ensure_waiting(lobby)
    if not player_name or not player_name.strip():
        raise InvalidActionError("Player name is required")
    _ensure_room(lobby)
    player = Player(id=generate_id(rng), name=player_name.strip())
    return replace(lobby, players=lobby.players + (player,)), player


def add_ai_players(lobby: Lobby, count: int,
                   rng: random.Random = None) -> Tuple[Lobby, List[Player]]:
    """
    Add AI players with the lobby's difficulty.

    Personalities cycle Aggressive, Cautious, Analytical, Chaotic.
    """
    _ensure_waiting(lobby)
    if count < 0:
        raise InvalidActionError("AI player count cannot be negative")
    _ensure_room(lobby, count)
    rng = rng or random.Random()

    taken = {p.name for p in lobby.players}
    added: List[Player] = []
    for i in range(count):
        name = generate_character_name(taken, rng)
        taken.add(name)
        added.append(Player(
            id=generate_id(rng),
            name=name,
            is_ai=True,
            ai_difficulty=lobby.settings.ai_difficulty,
            ai_personality=AI_PERSONALITIES[i % len(AI_PERSONALITIES)],
            character_name=name,
        ))
    return replace(lobby, players=lobby.players + tuple(added)), added


def remove_player(lobby: Lobby, player_id: str) -> Lobby:
    _ensure_waiting(lobby)
    if lobby.get_player_by_id(player_id) is None:
        raise InvalidActionError(f"Unknown player: {player_id}", player_id)
    if player_id == lobby.host_player_id:
        raise InvalidActionError("The host cannot leave their own lobby", player_id)
    return replace(lobby, players=tuple(p for p in lobby.players if p.id != player_id))


def fill_with_ai(lobby: Lobby, rng: random.Random = None) -> Lobby:
    """Top the roster up to min_players with AI when the lobby allows it."""
    if not lobby.settings.ai_player_fill:
        return lobby
    needed = lobby.settings.min_players - len(lobby.players)
    if needed <= 0:
        return lobby
    lobby, _ = add_ai_players(lobby, needed, rng)
    return lobby


def initialize_game(lobby: Lobby, now: float = 0.0, rng: random.Random = None) -> GameState:
    """
    Build the Lobby-phase GameState for a lobby's roster.

    Roles are not dealt here; GameEngine.start_game does that.
    """
    _ensure_waiting(lobby)
    if len(lobby.players) < lobby.settings.min_players:
        raise InvalidActionError(
            f"Need at least {lobby.settings.min_players} players to start "
            f"(have {len(lobby.players)})"
        )
    lore = lore_for_village(lobby.village_name) or generate_village_lore(rng)
    state = GameState(
        id=generate_id(rng),
        lobby_code=lobby.lobby_code,
        host_player_id=lobby.host_player_id,
        phase=Phase.LOBBY,
        current_phase_start_time=now,
        phase_time_limit=lobby.settings.time_limit_for(Phase.LOBBY),
        settings=lobby.settings,
        village_name=lobby.village_name or lore["name"],
        village_backstory=lore["backstory"],
        created_at=now,
        updated_at=now,
    )
    return replace_players(state, lobby.players)


def mark_lobby(lobby: Lobby, status: str) -> Lobby:
    return replace(lobby, status=status)

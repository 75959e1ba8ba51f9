"""
Game engine: drives one game through its phases.

GameEngine owns a single GameState and applies the pure rule functions in
the order a round needs them:

    start_game -> (submit_night_action... -> resolve_night
                   -> start_voting -> submit_vote... -> resolve_voting)*

Every operation replaces self.state with a new value. Rejected input
(InvalidActionError) is raised before anything is replaced.
"""

import random
import time
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from .ai_policy import AIDecision, DecisionKind, decide
from .assignment import assign_roles
from .error_logger import (
    log_exception,
    log_info,
    log_rejected,
    log_warning,
    set_context_from_state,
)
from .errors import IllegalTransitionError, InvalidActionError
from .game_state import (
    GameState,
    add_event,
    ensure_not_over,
    kill_player,
    latest_submissions,
    replace_players,
)
from .models import EliminationMethod, EventType, Phase, Player
from .narration import ROLE_REVEAL_MESSAGES
from .night_actions import (
    NightResolution,
    default_action_type,
    night_actions_complete,
    record_investigations,
    remember_night_choices,
    resolve_night_actions,
    submit_night_action,
)
from .phases import is_phase_expired, transition
from .roles import ActionType, Allegiance, RoleType, get_role
from .rules import DEFAULT_RULES, GameRules, can_witch_use
from .suspicion import update_suspicion_levels
from .voting import VoteResolution, resolve_votes, submit_vote, voting_complete
from .win_conditions import evaluate_win


Narrator = Callable[[str, Dict[str, str]], str]

DEATH_MESSAGES = {
    EliminationMethod.WEREWOLF: "{name} was killed by werewolves",
    EliminationMethod.POISON: "{name} was found poisoned",
    EliminationMethod.HUNTER: "{name} was shot by the Hunter",
    EliminationMethod.VOTE: "{name} was eliminated by the village",
}


class GameEngine:
    """
    Single-owner driver for one game.

    Args:
        state: A GameState, normally fresh from lobby.initialize_game
        rules: House rules shared by every resolver
        rng: The one source of randomness for shuffles, tie-breaks and AI
        clock: Returns the current time in seconds
        narrator: Optional callable(event, variables) -> text. Its output is
            only logged as narration events; failures never block the game.
    """

    def __init__(
        self,
        state: GameState,
        rules: GameRules = DEFAULT_RULES,
        rng: random.Random = None,
        clock: Callable[[], float] = time.time,
        narrator: Optional[Narrator] = None,
    ):
        self.state = state
        self.rules = rules
        self.rng = rng or random.Random()
        self.clock = clock
        self.narrator = narrator

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _now(self) -> float:
        return self.clock()

    def _event(self, event_type: EventType, message: str, involved=(), is_public: bool = True):
        self.state = add_event(
            self.state, event_type, message,
            involved_players=involved, is_public=is_public, timestamp=self._now(),
        )

    def _narrate(self, event: str, **variables):
        if self.narrator is None:
            return
        variables.setdefault("villageName", self.state.village_name)
        try:
            text = self.narrator(event, variables)
        except Exception as e:
            log_exception(e, f"Narrator failed for '{event}'", extra_context={"variables": variables})
            return
        if text:
            self._event(EventType.NARRATION, text)

    def _name(self, player_id: Optional[str]) -> str:
        player = self.state.get_player_by_id(player_id) if player_id else None
        return player.name if player else "Unknown"

    def _kill(self, player_id: str, method: EliminationMethod):
        """Kill a player, log it, and queue a Hunter's revenge shot."""
        if not self.state.is_alive(player_id):
            return
        player = self.state.get_player_by_id(player_id)
        self.state = kill_player(self.state, player_id, method)
        self._event(
            EventType.DEATH,
            DEATH_MESSAGES[method].format(name=player.name),
            involved=(player_id,),
        )
        log_info(f"{player.name} died ({method.value})", player_id=player_id)

        if player.role == RoleType.HUNTER and self.rules.hunter_revenge:
            self.state = replace(
                self.state,
                pending_hunter_ids=self.state.pending_hunter_ids + (player_id,),
            )

    def _reveal_role(self, player_id: str):
        player = self.state.get_player_by_id(player_id)
        role = get_role(player.role)
        self._event(
            EventType.ROLE_REVEAL,
            f"{player.name} was the {role.name}. {ROLE_REVEAL_MESSAGES[player.role]}",
            involved=(player_id,),
        )

    def _hold_for_hunters(self) -> bool:
        """Restart the phase timer while revenge shots are outstanding."""
        if not self.state.pending_hunter_ids:
            return False
        self.state = replace(self.state, current_phase_start_time=self._now())
        names = ", ".join(self._name(pid) for pid in self.state.pending_hunter_ids)
        log_info(f"Waiting for Hunter revenge: {names}")
        return True

    def _finish_phase(self):
        """Check for a winner, then move Night -> Day or Voting -> Night."""
        result = evaluate_win(self.state)
        if result.over:
            if result.winner == Allegiance.VILLAGERS:
                self._narrate("villagersWin")
            else:
                self._narrate("werewolvesWin")
            self.state = transition(self.state, Phase.GAME_OVER, self._now())
            log_info(f"Game over: {result.winner.value} win")
            return

        if self.state.phase == Phase.NIGHT:
            self.state = transition(self.state, Phase.DAY, self._now())
            self._narrate("dayDiscussion")
        elif self.state.phase == Phase.VOTING:
            self.state = transition(self.state, Phase.NIGHT, self._now())
            self._narrate("nightFall")

    def _require_phase(self, phase: Phase, next_phase: Phase):
        ensure_not_over(self.state)
        if self.state.phase != phase:
            raise IllegalTransitionError(self.state.phase.value, next_phase.value)

    # -------------------------------------------------------------------------
    # Game start
    # -------------------------------------------------------------------------

    def start_game(self) -> GameState:
        """Deal roles and open the first night."""
        set_context_from_state(self.state)
        self._require_phase(Phase.LOBBY, Phase.NIGHT)

        players = assign_roles(
            self.state.players,
            use_advanced_roles=self.state.settings.advanced_roles,
            rng=self.rng,
        )
        self.state = replace_players(self.state, players)
        self.state = transition(self.state, Phase.NIGHT, self._now())
        set_context_from_state(self.state)

        for player in self.state.players:
            role = get_role(player.role)
            self._event(
                EventType.ROLE_REVEAL,
                f"You are the {role.name}. {role.description}",
                involved=(player.id,),
                is_public=False,
            )
        pack = [p.id for p in self.state.get_players_by_role(RoleType.WEREWOLF)]
        if len(pack) > 1:
            names = ", ".join(self._name(pid) for pid in pack)
            self._event(EventType.ROLE_REVEAL, f"The pack: {names}", involved=pack, is_public=False)

        self._narrate("gameStart")
        log_info(f"Game started with {len(players)} players")
        return self.state

    # -------------------------------------------------------------------------
    # Night
    # -------------------------------------------------------------------------

    def submit_night_action(self, player_id: str, target_id: Optional[str],
                            action_type=None) -> GameState:
        set_context_from_state(self.state)
        try:
            if self.state.pending_hunter_ids:
                raise InvalidActionError("The night is already over", player_id)
            self.state = submit_night_action(
                self.state, player_id, target_id, self._now(),
                action_type=action_type, rules=self.rules,
            )
        except InvalidActionError as e:
            log_rejected(e, player_id=player_id, extra_context={"target": target_id})
            raise
        return self.state

    def night_actions_complete(self) -> bool:
        return night_actions_complete(self.state, self.rules)

    def resolve_night(self) -> NightResolution:
        """
        Resolve the night's actions and open the day.

        Missing actions count as abstentions. If a Hunter died, the phase
        holds until hunter_shoot is called for them.
        """
        set_context_from_state(self.state)
        self._require_phase(Phase.NIGHT, Phase.DAY)
        if self.state.pending_hunter_ids:
            raise InvalidActionError("Night already resolved; waiting for the Hunter")

        resolution = resolve_night_actions(self.state, self.rules, self.rng)
        self.state = record_investigations(self.state, resolution.investigations)
        self.state = remember_night_choices(self.state)

        for inv in resolution.investigations:
            self._event(
                EventType.INVESTIGATION,
                f"Your vision reveals that {self._name(inv.target_id)} is {inv.result}",
                involved=(inv.seer_id,),
                is_public=False,
            )

        effective = latest_submissions(
            self.state.night_actions, key=lambda a: (a.player_id, a.action_type)
        )
        for saved_id in resolution.saved:
            if saved_id in resolution.deaths:
                continue
            protectors = tuple(
                a.player_id for a in effective
                if a.target_id == saved_id
                and a.action_type in (ActionType.PROTECT, ActionType.HEAL)
            )
            self._event(
                EventType.PROTECTION,
                f"You saved {self._name(saved_id)} from the wolves tonight",
                involved=protectors,
                is_public=False,
            )

        for player_id in resolution.deaths:
            self._kill(player_id, resolution.causes[player_id])

        if resolution.deaths:
            self._narrate("dawnWithDeath", victimName=self._name(resolution.deaths[0]))
        else:
            self._narrate("dawnNoDeath")

        if not self._hold_for_hunters():
            self._finish_phase()
        return resolution

    # -------------------------------------------------------------------------
    # Day and voting
    # -------------------------------------------------------------------------

    def start_voting(self) -> GameState:
        set_context_from_state(self.state)
        self._require_phase(Phase.DAY, Phase.VOTING)
        self.state = transition(self.state, Phase.VOTING, self._now())
        self._narrate("voteStart")
        return self.state

    def submit_vote(self, voter_id: str, target_id: Optional[str]) -> GameState:
        set_context_from_state(self.state)
        try:
            self.state = submit_vote(self.state, voter_id, target_id, self._now())
        except InvalidActionError as e:
            log_rejected(e, player_id=voter_id, extra_context={"target": target_id})
            raise
        return self.state

    def voting_complete(self) -> bool:
        return voting_complete(self.state)

    def resolve_voting(self) -> VoteResolution:
        """Close the vote, apply the elimination, and move on."""
        set_context_from_state(self.state)
        self._require_phase(Phase.VOTING, Phase.NIGHT)
        if not self.state.voting_open:
            raise InvalidActionError("Voting already resolved; waiting for the Hunter")

        resolution = resolve_votes(self.state, self.rules, self.rng)
        self.state = replace(self.state, voting_open=False)
        self.state = update_suspicion_levels(self.state, self.rules)

        if resolution.tally:
            summary = ", ".join(
                f"{self._name(pid)}: {count}" for pid, count in sorted(resolution.tally.items())
            )
            self._event(EventType.VOTE, f"Votes cast - {summary}", involved=tuple(resolution.tally))

        eliminated_id = resolution.eliminated_id
        if eliminated_id is None:
            self._narrate("noElimination")
        else:
            eliminated = self.state.get_player_by_id(eliminated_id)
            self._kill(eliminated_id, EliminationMethod.VOTE)
            self._event(
                EventType.ELIMINATION,
                f"{eliminated.name} was eliminated by vote",
                involved=(eliminated_id,),
            )
            self._reveal_role(eliminated_id)
            self._narrate(
                "elimination",
                eliminatedName=eliminated.name,
                role=get_role(eliminated.role).name,
            )
            if eliminated.role == RoleType.TANNER:
                self.state = replace(
                    self.state,
                    tanner_winners=self.state.tanner_winners + (eliminated_id,),
                )
                self._narrate("tannerWins", tannerName=eliminated.name)

        if not self._hold_for_hunters():
            self._finish_phase()
        return resolution

    # -------------------------------------------------------------------------
    # Hunter revenge
    # -------------------------------------------------------------------------

    def hunter_shoot(self, hunter_id: str, target_id: Optional[str]) -> GameState:
        """Take a dead Hunter's revenge shot; target None forfeits it."""
        set_context_from_state(self.state)
        try:
            ensure_not_over(self.state)
            if hunter_id not in self.state.pending_hunter_ids:
                raise InvalidActionError("No revenge shot is pending for this player", hunter_id)
            if target_id is not None:
                if target_id == hunter_id or not self.state.is_alive(target_id):
                    raise InvalidActionError("The Hunter must shoot a living player", hunter_id)
        except InvalidActionError as e:
            log_rejected(e, player_id=hunter_id, extra_context={"target": target_id})
            raise

        self.state = replace(
            self.state,
            pending_hunter_ids=tuple(
                pid for pid in self.state.pending_hunter_ids if pid != hunter_id
            ),
        )
        if target_id is None:
            log_info("Hunter forfeited the revenge shot", player_id=hunter_id)
        else:
            target_name = self._name(target_id)
            self._kill(target_id, EliminationMethod.HUNTER)
            self._reveal_role(target_id)
            self._narrate(
                "hunterRevenge", hunterName=self._name(hunter_id), targetName=target_name
            )

        if not self.state.pending_hunter_ids:
            self._finish_phase()
        return self.state

    # -------------------------------------------------------------------------
    # AI players
    # -------------------------------------------------------------------------

    def _ai_players(self) -> List[Player]:
        return [p for p in self.state.get_alive_players() if p.is_ai]

    def run_ai_night_actions(self) -> List[AIDecision]:
        """Submit a night action for every AI that has not acted yet."""
        if self.state.phase != Phase.NIGHT or self.state.pending_hunter_ids:
            return []
        acted = {a.player_id for a in self.state.night_actions}
        decisions = []
        for player in self._ai_players():
            if player.id in acted or not get_role(player.role).has_night_action:
                continue
            decision = decide(self.state, player, DecisionKind.NIGHT_ACTION, self.rules, self.rng)
            decisions.append(decision)
            action_type = decision.action_type or default_action_type(player.role)
            if action_type is None:
                continue
            try:
                self.submit_night_action(player.id, decision.target_id, action_type)
            except InvalidActionError:
                continue  # already logged
        return decisions

    def run_ai_votes(self) -> List[AIDecision]:
        """Cast a vote for every AI that has not voted yet."""
        if self.state.phase != Phase.VOTING or not self.state.voting_open:
            return []
        voted = {v.voter_id for v in self.state.day_votes}
        decisions = []
        for player in self._ai_players():
            if player.id in voted:
                continue
            decision = decide(self.state, player, DecisionKind.DAY_VOTE, self.rules, self.rng)
            decisions.append(decision)
            try:
                self.submit_vote(player.id, decision.target_id)
            except InvalidActionError:
                continue  # already logged
        return decisions

    def run_ai_hunter_shots(self) -> List[AIDecision]:
        decisions = []
        for hunter_id in list(self.state.pending_hunter_ids):
            if self.state.game_over:
                break
            hunter = self.state.get_player_by_id(hunter_id)
            if not hunter.is_ai:
                continue
            decision = decide(self.state, hunter, DecisionKind.HUNTER_SHOT, self.rules, self.rng)
            decisions.append(decision)
            self.hunter_shoot(hunter_id, decision.target_id)
        return decisions

    # -------------------------------------------------------------------------
    # Timers
    # -------------------------------------------------------------------------

    def check_phase_timeout(self, now: float = None) -> bool:
        """
        Force-resolve the current phase once its time limit has passed.

        Missing night actions and votes count as abstentions; human Hunters
        who have not shot forfeit. Returns True if the phase was resolved.
        """
        now = self._now() if now is None else now
        if not is_phase_expired(self.state, now):
            return False
        set_context_from_state(self.state)
        log_info(f"{self.state.phase.value} phase expired")

        if self.state.pending_hunter_ids:
            self.run_ai_hunter_shots()
            for hunter_id in list(self.state.pending_hunter_ids):
                if self.state.game_over:
                    break
                log_warning("Hunter did not shoot in time; revenge forfeited", player_id=hunter_id)
                self.hunter_shoot(hunter_id, None)
        elif self.state.phase == Phase.NIGHT:
            self.resolve_night()
        elif self.state.phase == Phase.DAY:
            self.start_voting()
        elif self.state.phase == Phase.VOTING:
            self.resolve_voting()
        return True

    def tick(self, now: float = None) -> bool:
        """
        One polling step for a driver loop.

        Lets AI players act, resolves phases whose players have all acted,
        and enforces time limits. Returns True if the state changed.
        """
        if self.state.game_over or self.state.phase == Phase.LOBBY:
            return False
        before = self.state

        if self.state.pending_hunter_ids:
            self.run_ai_hunter_shots()
        elif self.state.phase == Phase.NIGHT:
            self.run_ai_night_actions()
            if self.night_actions_complete() and not self._humans_pending_night():
                self.resolve_night()
        elif self.state.phase == Phase.VOTING:
            self.run_ai_votes()
            if self.voting_complete():
                self.resolve_voting()

        if not self.state.game_over:
            self.check_phase_timeout(now)
        return self.state is not before

    def _humans_pending_night(self) -> bool:
        """Living human Witches who still hold a potion and have not acted."""
        acted = {a.player_id for a in self.state.night_actions}
        for player in self.state.get_alive_players():
            if player.is_ai or player.id in acted or player.role != RoleType.WITCH:
                continue
            for action_type in (ActionType.HEAL, ActionType.POISON):
                allowed, _ = can_witch_use(self.rules, player.id, action_type,
                                           self.state.used_potions)
                if allowed:
                    return True
        return False

    def get_state(self, viewer_id: Optional[str] = None) -> Dict:
        """Serialized state, filtered for one viewer when viewer_id is given."""
        if viewer_id is None:
            return self.state.to_dict()
        return self.state.view_for(viewer_id)


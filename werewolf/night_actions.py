"""
Night action submission and resolution.

This module provides:
- Boundary validation for submitted night actions
- Duplicate-submission handling (latest submission per actor and type)
- The werewolf kill tally with its tie-break policy
- Protections (Doctor, Witch heal), poisons and Seer investigations
"""

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple

from .errors import InvalidActionError
from .game_state import GameState, ensure_not_over, latest_submissions
from .models import EliminationMethod, InvestigationRecord, NightAction, Phase
from .roles import ActionType, RoleType, get_role
from .rules import (
    DEFAULT_RULES,
    TIE_BREAK_LOWEST_ID,
    GameRules,
    can_doctor_protect,
    can_witch_use,
    get_investigation_result,
    kill_tie_break,
)

logger = logging.getLogger("werewolf")


# Default action submitted by roles with a single night power
DEFAULT_ACTION_FOR_ROLE: Dict[RoleType, ActionType] = {
    RoleType.WEREWOLF: ActionType.KILL,
    RoleType.SEER: ActionType.INVESTIGATE,
    RoleType.DOCTOR: ActionType.PROTECT,
}


@dataclass(frozen=True)
class Investigation:
    seer_id: str
    target_id: str
    result: str  # "Werewolf" or "Innocent"

    def to_dict(self) -> Dict:
        return {"seer_id": self.seer_id, "target_id": self.target_id, "result": self.result}


@dataclass(frozen=True)
class NightResolution:
    """
    Result of resolving one night.

    Attributes:
        deaths: Player ids who die tonight, in resolution order
        saved: Player ids attacked by the pack but protected
        investigations: Seer readings
        causes: How each id in deaths died
        pack_target: The pack's chosen victim before protections, if any
        kill_tally: Werewolf votes per target
    """
    deaths: Tuple[str, ...] = ()
    saved: Tuple[str, ...] = ()
    investigations: Tuple[Investigation, ...] = ()
    causes: Dict[str, EliminationMethod] = field(default_factory=dict)
    pack_target: Optional[str] = None
    kill_tally: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "deaths": list(self.deaths),
            "saved": list(self.saved),
            "investigations": [i.to_dict() for i in self.investigations],
            "causes": {k: v.value for k, v in self.causes.items()},
            "pack_target": self.pack_target,
            "kill_tally": dict(self.kill_tally),
        }


# =============================================================================
# SUBMISSION
# =============================================================================

def default_action_type(role: RoleType) -> Optional[ActionType]:
    return DEFAULT_ACTION_FOR_ROLE.get(role)


def validate_night_action(
    state: GameState,
    player_id: str,
    target_id: Optional[str],
    action_type: Optional[ActionType] = None,
    rules: GameRules = DEFAULT_RULES,
) -> ActionType:
    """
    Check a night action at the boundary.

    Returns the resolved action type. Raises InvalidActionError without
    touching the state when the rules reject the action.
    """
    if state.game_over or state.phase != Phase.NIGHT:
        raise InvalidActionError("Night actions are only accepted during the Night phase", player_id)

    actor = state.get_player_by_id(player_id)
    if actor is None:
        raise InvalidActionError(f"Unknown player: {player_id}", player_id)
    if not actor.is_alive():
        raise InvalidActionError("Only alive players can perform night actions", player_id)
    if actor.role is None:
        raise InvalidActionError("Player has no role yet", player_id)

    role = get_role(actor.role)
    if action_type is None:
        action_type = default_action_type(actor.role)
    if action_type is None:
        raise InvalidActionError(f"{role.name} must name a night action", player_id)
    try:
        action_type = ActionType(action_type)
    except ValueError:
        raise InvalidActionError(f"Unknown night action: {action_type}", player_id)
    if action_type not in role.action_types:
        raise InvalidActionError(f"{role.name} cannot {action_type.value}", player_id)

    # Abstaining is always allowed
    if target_id is None:
        return action_type

    target = state.get_player_by_id(target_id)
    if target is None:
        raise InvalidActionError(f"Unknown target: {target_id}", player_id)
    if not target.is_alive():
        raise InvalidActionError("Target must be alive", player_id)

    if action_type == ActionType.KILL and target.role == RoleType.WEREWOLF:
        raise InvalidActionError("Werewolves cannot target the pack", player_id)
    if action_type in (ActionType.INVESTIGATE, ActionType.POISON) and target_id == player_id:
        raise InvalidActionError(f"Cannot {action_type.value} yourself", player_id)
    if action_type == ActionType.PROTECT:
        allowed, reason = can_doctor_protect(rules, player_id, target_id, state.last_protected)
        if not allowed:
            raise InvalidActionError(reason, player_id)
    if action_type in (ActionType.HEAL, ActionType.POISON):
        allowed, reason = can_witch_use(rules, player_id, action_type, state.used_potions)
        if not allowed:
            raise InvalidActionError(reason, player_id)

    return action_type


def submit_night_action(
    state: GameState,
    player_id: str,
    target_id: Optional[str],
    timestamp: float,
    action_type: Optional[ActionType] = None,
    rules: GameRules = DEFAULT_RULES,
) -> GameState:
    """Validate and append a night action. Raises InvalidActionError on rejection."""
    action_type = validate_night_action(state, player_id, target_id, action_type, rules)
    actor = state.get_player_by_id(player_id)
    action = NightAction(
        player_id=player_id,
        role_type=actor.role,
        action_type=action_type,
        target_id=target_id,
        timestamp=timestamp,
    )
    return replace(state, night_actions=state.night_actions + (action,))


def night_actors(state: GameState, rules: GameRules = DEFAULT_RULES) -> List[str]:
    """Living players whose role is expected to act tonight."""
    return [
        p.id for p in state.get_alive_players()
        if p.role in rules.night_role_order
    ]


def night_actions_complete(state: GameState, rules: GameRules = DEFAULT_RULES) -> bool:
    """True once every expected night actor has submitted at least once."""
    acted = {a.player_id for a in state.night_actions}
    return all(pid in acted for pid in night_actors(state, rules))


# =============================================================================
# RESOLUTION
# =============================================================================

class NightActionResolver:
    """
    Resolves a night's collected actions.

    Usage:
        resolver = NightActionResolver(rules, rng)
        resolution = resolver.resolve(game_state)

    Resolution order:
    1. Keep each actor's latest action per type
    2. Tally werewolf kills and pick the pack's victim
    3. Collect protections (Doctor protect, Witch heal)
    4. Apply the pack's kill unless protected
    5. Apply poisons (protections do not stop poison)
    6. Read investigations
    """

    def __init__(self, rules: GameRules = DEFAULT_RULES, rng: random.Random = None):
        self.rules = rules
        self.rng = rng or random.Random()

    def resolve(self, state: GameState) -> NightResolution:
        actions = self._effective_actions(state)
        by_type: Dict[ActionType, List[NightAction]] = {t: [] for t in ActionType}
        for action in actions:
            by_type[action.action_type].append(action)

        tally = self._tally_kills(state, by_type[ActionType.KILL])
        pack_target = self._choose_pack_target(tally)
        protected = self._get_protected_players(
            state, by_type[ActionType.PROTECT] + by_type[ActionType.HEAL]
        )

        deaths: List[str] = []
        saved: List[str] = []
        causes: Dict[str, EliminationMethod] = {}

        if pack_target is not None:
            if pack_target in protected:
                saved.append(pack_target)
            else:
                deaths.append(pack_target)
                causes[pack_target] = EliminationMethod.WEREWOLF

        for target_id in self._process_poisons(state, by_type[ActionType.POISON]):
            if target_id not in causes:
                deaths.append(target_id)
                causes[target_id] = EliminationMethod.POISON
                if target_id in saved:
                    saved.remove(target_id)

        investigations = self._process_investigations(state, by_type[ActionType.INVESTIGATE])

        logger.info(
            "Night %s resolved: target=%s deaths=%s saved=%s investigations=%d",
            state.night_number, pack_target, deaths, saved, len(investigations),
        )
        return NightResolution(
            deaths=tuple(deaths),
            saved=tuple(saved),
            investigations=tuple(investigations),
            causes=causes,
            pack_target=pack_target,
            kill_tally=tally,
        )

    def _effective_actions(self, state: GameState) -> List[NightAction]:
        """Latest action per (actor, type) from actors still alive."""
        latest = latest_submissions(
            state.night_actions, key=lambda a: (a.player_id, a.action_type)
        )
        return [a for a in latest if state.is_alive(a.player_id)]

    def _tally_kills(self, state: GameState, kills: List[NightAction]) -> Dict[str, int]:
        """Count living werewolves' kill votes per living target."""
        tally: Dict[str, int] = {}
        for action in kills:
            actor = state.get_player_by_id(action.player_id)
            if actor.role != RoleType.WEREWOLF:
                continue
            if action.target_id is None or not state.is_alive(action.target_id):
                continue
            tally[action.target_id] = tally.get(action.target_id, 0) + 1
        return tally

    def _choose_pack_target(self, tally: Dict[str, int]) -> Optional[str]:
        if not tally:
            return None
        top = max(tally.values())
        tied = sorted(pid for pid, count in tally.items() if count == top)
        if len(tied) == 1:
            return tied[0]
        if kill_tie_break(self.rules) == TIE_BREAK_LOWEST_ID:
            return tied[0]
        return self.rng.choice(tied)

    def _get_protected_players(self, state: GameState, protections: List[NightAction]) -> Set[str]:
        """Targets of protections; a protection of a dead player is inert."""
        return {
            a.target_id for a in protections
            if a.target_id is not None and state.is_alive(a.target_id)
        }

    def _process_poisons(self, state: GameState, poisons: List[NightAction]) -> List[str]:
        return [
            a.target_id for a in poisons
            if a.target_id is not None and state.is_alive(a.target_id)
        ]

    def _process_investigations(self, state: GameState,
                                investigations: List[NightAction]) -> List[Investigation]:
        results = []
        for action in investigations:
            if action.target_id is None:
                continue
            target = state.get_player_by_id(action.target_id)
            if target is None or target.role is None:
                continue
            results.append(Investigation(
                seer_id=action.player_id,
                target_id=action.target_id,
                result=get_investigation_result(target.role),
            ))
        return results


def resolve_night_actions(
    state: GameState,
    rules: GameRules = DEFAULT_RULES,
    rng: random.Random = None,
) -> NightResolution:
    """Resolve the current night's actions. Pure."""
    return NightActionResolver(rules, rng).resolve(state)


# =============================================================================
# APPLYING RESULTS
# =============================================================================

def record_investigations(state: GameState, investigations) -> GameState:
    """
    Write Seer readings back onto their originating actions.

    Only the seer's latest investigate action for the target carries the
    result; every reading is also appended to the game-long log.
    """
    ensure_not_over(state)
    actions = list(state.night_actions)
    log = list(state.investigation_log)
    for inv in investigations:
        for index in range(len(actions) - 1, -1, -1):
            action = actions[index]
            if (action.player_id == inv.seer_id
                    and action.action_type == ActionType.INVESTIGATE
                    and action.target_id == inv.target_id):
                actions[index] = replace(action, result=inv.result)
                break
        log.append(InvestigationRecord(
            seer_id=inv.seer_id,
            target_id=inv.target_id,
            result=inv.result,
            night=state.night_number,
        ))
    return replace(state, night_actions=tuple(actions), investigation_log=tuple(log))


def remember_night_choices(state: GameState) -> GameState:
    """
    Carry tonight's doctor protections and witch potions into later nights.

    A doctor who abstains tonight has no "last protected" target tomorrow.
    """
    latest = latest_submissions(
        state.night_actions, key=lambda a: (a.player_id, a.action_type)
    )
    last_protected: Dict[str, str] = {}
    used_potions = {k: tuple(v) for k, v in state.used_potions.items()}
    for action in latest:
        if action.action_type == ActionType.PROTECT and action.target_id is not None:
            last_protected[action.player_id] = action.target_id
        elif action.action_type in (ActionType.HEAL, ActionType.POISON) and action.target_id is not None:
            used_potions[action.player_id] = (
                used_potions.get(action.player_id, ()) + (action.action_type.value,)
            )
    return replace(state, last_protected=last_protected, used_potions=used_potions)

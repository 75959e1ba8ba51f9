"""
Centralized game rules configuration.

All house rules and tie-break policies live here so the resolvers,
the AI policy and the engine agree on them.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .roles import ActionType, RoleType


TIE_BREAK_RANDOM = "random"
TIE_BREAK_LOWEST_ID = "lowest_id"
TIE_BREAK_NO_ELIMINATION = "no_elimination"

KILL_TIE_BREAKS = (TIE_BREAK_RANDOM, TIE_BREAK_LOWEST_ID)
VOTE_TIE_BREAKS = (TIE_BREAK_RANDOM, TIE_BREAK_LOWEST_ID, TIE_BREAK_NO_ELIMINATION)


@dataclass
class GameRules:
    """
    All configurable game rules in one place.

    Defaults match the reference game.
    """

    # Tie-break policy for the werewolf kill tally and the day vote.
    # "no_elimination" only applies to the day vote; the pack falls back
    # to random among the tied targets.
    tie_break: str = TIE_BREAK_RANDOM

    # Doctor rules
    doctor_can_protect_same_twice: bool = False  # Cannot protect same player two nights in a row
    doctor_can_self_protect: bool = True         # Can protect themselves

    # Witch rules
    witch_heal_uses: int = 1     # Heal potions per game
    witch_poison_uses: int = 1   # Poison potions per game

    # Hunter rules
    hunter_revenge: bool = True  # Dying Hunter takes one player along

    # Night roles expected to act before the night auto-resolves
    night_role_order: List[RoleType] = field(
        default_factory=lambda: [RoleType.WEREWOLF, RoleType.SEER, RoleType.DOCTOR]
    )

    # Suspicion rules
    suspicion_per_vote: int = 20
    max_suspicion: int = 100

    def __post_init__(self):
        if self.tie_break not in VOTE_TIE_BREAKS:
            raise ValueError(f"Unknown tie_break policy: {self.tie_break}")


# =============================================================================
# RULE HELPER FUNCTIONS
# =============================================================================

def kill_tie_break(rules: GameRules) -> str:
    """Tie-break policy for the pack's victim."""
    if rules.tie_break in KILL_TIE_BREAKS:
        return rules.tie_break
    return TIE_BREAK_RANDOM


def can_doctor_protect(rules: GameRules, doctor_id: str, target_id: str,
                       last_protected: Dict[str, str]) -> Tuple[bool, str]:
    """
    Check if a doctor can protect a given target.

    Returns:
        (can_protect, reason) - reason is empty string if allowed
    """
    if not rules.doctor_can_self_protect and doctor_id == target_id:
        return False, "Cannot protect yourself"
    if not rules.doctor_can_protect_same_twice:
        if last_protected.get(doctor_id) == target_id:
            return False, f"Cannot protect {target_id} again (protected last night)"
    return True, ""


def potion_limit(rules: GameRules, action_type: ActionType) -> int:
    if action_type == ActionType.HEAL:
        return rules.witch_heal_uses
    if action_type == ActionType.POISON:
        return rules.witch_poison_uses
    return 0


def can_witch_use(rules: GameRules, witch_id: str, action_type: ActionType,
                  used_potions: Dict[str, List[str]]) -> Tuple[bool, str]:
    """
    Check if a witch still holds the requested potion.

    Returns:
        (can_use, reason) - reason is empty string if allowed
    """
    used = used_potions.get(witch_id, [])
    if used.count(action_type.value) >= potion_limit(rules, action_type):
        return False, f"{action_type.value} potion already used"
    return True, ""


def get_investigation_result(target_role: RoleType) -> str:
    """
    Determine the Seer's reading of a target.

    The Fool deliberately reads as a Werewolf even though they side with
    the village.
    """
    if target_role in (RoleType.WEREWOLF, RoleType.FOOL):
        return "Werewolf"
    return "Innocent"


# =============================================================================
# DEFAULT RULES INSTANCE
# =============================================================================

DEFAULT_RULES = GameRules()

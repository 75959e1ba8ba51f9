"""Role definitions and the role distribution table."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from .errors import InvalidActionError, InvariantViolation


class RoleType(str, Enum):
    """The nine playable roles."""
    WEREWOLF = "Werewolf"
    VILLAGER = "Villager"
    SEER = "Seer"
    DOCTOR = "Doctor"
    HUNTER = "Hunter"
    WITCH = "Witch"
    TANNER = "Tanner"
    CUPID = "Cupid"
    FOOL = "Fool"


class Allegiance(str, Enum):
    VILLAGERS = "Villagers"
    WEREWOLVES = "Werewolves"
    NEUTRAL = "Neutral"


class ActionType(str, Enum):
    """Types of night actions."""
    KILL = "kill"                # Werewolf pack vote
    INVESTIGATE = "investigate"  # Seer
    PROTECT = "protect"          # Doctor
    POISON = "poison"            # Witch, once per game
    HEAL = "heal"                # Witch, once per game


@dataclass(frozen=True)
class Role:
    """Static description of a role. Never mutated at runtime."""
    type: RoleType
    allegiance: Allegiance
    name: str
    description: str
    night_action: Optional[str]
    special_ability: str
    difficulty: str
    wins_with_villagers: bool
    action_types: FrozenSet[ActionType] = frozenset()

    @property
    def has_night_action(self) -> bool:
        return bool(self.action_types)

    def to_dict(self) -> Dict:
        return {
            "type": self.type.value,
            "allegiance": self.allegiance.value,
            "name": self.name,
            "description": self.description,
            "night_action": self.night_action,
            "special_ability": self.special_ability,
            "difficulty": self.difficulty,
            "wins_with_villagers": self.wins_with_villagers,
            "has_night_action": self.has_night_action,
        }


# Role registry
ROLE_CATALOG: Dict[RoleType, Role] = {
    RoleType.WEREWOLF: Role(
        type=RoleType.WEREWOLF,
        allegiance=Allegiance.WEREWOLVES,
        name="Werewolf",
        description="A creature of the night. Each night the pack chooses a villager to kill.",
        night_action="Choose a player to kill",
        special_ability="Knows other Werewolves",
        difficulty="Medium",
        wins_with_villagers=False,
        action_types=frozenset({ActionType.KILL}),
    ),
    RoleType.VILLAGER: Role(
        type=RoleType.VILLAGER,
        allegiance=Allegiance.VILLAGERS,
        name="Villager",
        description="A simple villager with no special powers. The day vote is your weapon.",
        night_action=None,
        special_ability="None",
        difficulty="Easy",
        wins_with_villagers=True,
    ),
    RoleType.SEER: Role(
        type=RoleType.SEER,
        allegiance=Allegiance.VILLAGERS,
        name="Seer",
        description="Each night, investigate one player to learn their true nature.",
        night_action="Investigate one player",
        special_ability="Learn if target is Werewolf or not",
        difficulty="Hard",
        wins_with_villagers=True,
        action_types=frozenset({ActionType.INVESTIGATE}),
    ),
    RoleType.DOCTOR: Role(
        type=RoleType.DOCTOR,
        allegiance=Allegiance.VILLAGERS,
        name="Doctor",
        description="Each night, protect one player from the Werewolves.",
        night_action="Protect one player",
        special_ability="Prevents death if chosen player attacked",
        difficulty="Medium",
        wins_with_villagers=True,
        action_types=frozenset({ActionType.PROTECT}),
    ),
    RoleType.HUNTER: Role(
        type=RoleType.HUNTER,
        allegiance=Allegiance.VILLAGERS,
        name="Hunter",
        description="When you die, you immediately take one other player with you.",
        night_action=None,
        special_ability="Upon death, immediately kills one player",
        difficulty="Medium",
        wins_with_villagers=True,
    ),
    RoleType.WITCH: Role(
        type=RoleType.WITCH,
        allegiance=Allegiance.VILLAGERS,
        name="Witch",
        description="Two potions, one to heal and one to poison. Each can be used once per game.",
        night_action="Use heal or poison potion",
        special_ability="Save victim OR kill someone (once each)",
        difficulty="Hard",
        wins_with_villagers=True,
        action_types=frozenset({ActionType.HEAL, ActionType.POISON}),
    ),
    RoleType.TANNER: Role(
        type=RoleType.TANNER,
        allegiance=Allegiance.NEUTRAL,
        name="Tanner",
        description="Tired of life. You win if YOU are eliminated during the day.",
        night_action=None,
        special_ability="Wins if they are voted off",
        difficulty="Easy",
        wins_with_villagers=False,
    ),
    # Cupid's linking power is flavour only; no lovers mechanic is resolved.
    RoleType.CUPID: Role(
        type=RoleType.CUPID,
        allegiance=Allegiance.VILLAGERS,
        name="Cupid",
        description="On the first night, you link two players. If one dies, both die.",
        night_action=None,
        special_ability="Linked players share fate",
        difficulty="Medium",
        wins_with_villagers=True,
    ),
    RoleType.FOOL: Role(
        type=RoleType.FOOL,
        allegiance=Allegiance.VILLAGERS,
        name="Fool",
        description="A villager who appears as a Werewolf to the Seer.",
        night_action=None,
        special_ability="Appears as Werewolf to Seer (but innocent)",
        difficulty="Medium",
        wins_with_villagers=True,
    ),
}


def get_role(role_type: RoleType) -> Role:
    """Look up a role definition."""
    return ROLE_CATALOG[RoleType(role_type)]


def roles_with_action(action_type: ActionType) -> List[RoleType]:
    """Role types allowed to submit a given night action."""
    return [r.type for r in ROLE_CATALOG.values() if action_type in r.action_types]


# =============================================================================
# ROLE DISTRIBUTION TABLE
# =============================================================================

@dataclass(frozen=True)
class RoleDistribution:
    """
    Exact role counts for a player count.

    `villagers` is the padding for a base game. Advanced roles, when
    enabled, take seats from the villagers so the total never changes.
    """
    player_count: int
    werewolves: int
    seer: int
    doctor: int
    hunter: int
    witch: int
    villagers: int
    tanner: int = 0
    cupid: int = 0
    fool: int = 0

    def base_counts(self) -> Dict[RoleType, int]:
        return {
            RoleType.WEREWOLF: self.werewolves,
            RoleType.SEER: self.seer,
            RoleType.DOCTOR: self.doctor,
            RoleType.HUNTER: self.hunter,
            RoleType.WITCH: self.witch,
        }

    def advanced_counts(self) -> Dict[RoleType, int]:
        return {
            RoleType.TANNER: self.tanner,
            RoleType.CUPID: self.cupid,
            RoleType.FOOL: self.fool,
        }

    def role_counts(self, use_advanced_roles: bool = False,
                    player_count: int = None) -> Dict[RoleType, int]:
        """
        Full role multiset for this row, padded with Villagers.

        player_count lets a clamped row seat a roster outside the table's
        range; only the Villager padding changes.
        """
        seats = self.player_count if player_count is None else player_count
        counts = self.base_counts()
        if use_advanced_roles:
            counts.update(self.advanced_counts())
        counts = {role: n for role, n in counts.items() if n}
        specials = sum(counts.values())
        if specials > seats:
            raise InvalidActionError(
                f"{seats} players cannot seat {specials} special roles"
            )
        counts[RoleType.VILLAGER] = seats - specials
        return counts


ROLE_DISTRIBUTIONS: List[RoleDistribution] = [
    RoleDistribution(5, werewolves=2, seer=1, doctor=1, hunter=0, witch=0, villagers=1),
    RoleDistribution(6, werewolves=2, seer=1, doctor=1, hunter=0, witch=0, villagers=2, tanner=1),
    RoleDistribution(7, werewolves=2, seer=1, doctor=1, hunter=1, witch=0, villagers=2, tanner=1),
    RoleDistribution(8, werewolves=2, seer=1, doctor=1, hunter=1, witch=0, villagers=3, tanner=1, fool=1),
    RoleDistribution(9, werewolves=2, seer=1, doctor=1, hunter=1, witch=0, villagers=4, tanner=1, fool=1),
    RoleDistribution(10, werewolves=3, seer=1, doctor=1, hunter=1, witch=1, villagers=3, tanner=1, cupid=1, fool=1),
    RoleDistribution(11, werewolves=3, seer=1, doctor=1, hunter=1, witch=1, villagers=4, tanner=1, cupid=1, fool=1),
    RoleDistribution(12, werewolves=3, seer=1, doctor=1, hunter=1, witch=1, villagers=5, tanner=1, cupid=1, fool=1),
]

MIN_SUPPORTED_PLAYERS = ROLE_DISTRIBUTIONS[0].player_count
MAX_SUPPORTED_PLAYERS = ROLE_DISTRIBUTIONS[-1].player_count


def validate_distribution(distribution: RoleDistribution):
    """Fail loudly if a table row cannot seat exactly its player count."""
    base = sum(distribution.base_counts().values())
    if base + distribution.villagers != distribution.player_count:
        raise InvariantViolation(
            f"Distribution for {distribution.player_count} players sums to "
            f"{base + distribution.villagers}"
        )
    if sum(distribution.advanced_counts().values()) > distribution.villagers:
        raise InvariantViolation(
            f"Distribution for {distribution.player_count} players has more "
            f"advanced roles than villager seats"
        )


def get_role_distribution(player_count: int) -> RoleDistribution:
    """
    Get the distribution row for a player count.

    Counts outside the supported range clamp to the nearest row.
    """
    clamped = min(max(player_count, MIN_SUPPORTED_PLAYERS), MAX_SUPPORTED_PLAYERS)
    for distribution in ROLE_DISTRIBUTIONS:
        if distribution.player_count == clamped:
            return distribution
    raise InvariantViolation(f"No distribution row for {clamped} players")


for _row in ROLE_DISTRIBUTIONS:
    validate_distribution(_row)

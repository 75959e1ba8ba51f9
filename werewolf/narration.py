"""
Narration templates.

The engine hands an event name and a few named substitutions to a narrator
callable; this module is the bundled template narrator. Rules never read
its output.
"""

import random
import re
from typing import Dict, List

from .roles import RoleType


NARRATION_TEMPLATES: Dict[str, List[str]] = {
    "gameStart": [
        "Welcome to the village of {villageName}. For generations your people lived in peace... "
        "until the wolves came. Some among you are not what they seem. Trust no one.\n\n"
        "The sun sets. Night falls...",
        "{villageName} huddles in fear as darkness descends. Werewolves lurk among you, wearing "
        "the faces of neighbors and friends.\n\nLet the hunt begin...",
        "The village of {villageName} has seen better days. Tonight the moon rises full and red, "
        "and ancient evils stir.\n\nWho will survive to see the dawn?",
    ],
    "nightFall": [
        "Night falls over {villageName}. Villagers bar their doors and pray for dawn. "
        "In the shadows, hungry eyes gleam...",
        "Darkness blankets {villageName}. Somewhere in the night, the wolves stir...",
        "The sun sinks below the horizon. Only the brave, or the cursed, remain awake.",
    ],
    "dawnNoDeath": [
        "The rooster crows. Survivors emerge from their homes... and everyone is accounted for. "
        "The wolves hunted, but found no prey. Was someone watching over you?",
        "Sunlight breaks through the mist. By some fortune, all survived the night. "
        "Suspicion lingers all the same.",
    ],
    "dawnWithDeath": [
        "The rooster crows. The town square falls silent: slumped against the well lies "
        "{victimName}. Claw marks. Fangs. The wolves struck again.",
        "Dawn breaks over {villageName}, but it brings no comfort. {victimName} lies cold "
        "in the street. The wolves have claimed another victim.",
    ],
    "dayDiscussion": [
        "The survivors gather in the town square. Accusations fly. Someone here is lying.",
        "Paranoia spreads like wildfire. Every word could be a lie. Who can you trust?",
    ],
    "voteStart": [
        "The discussion grows heated. It is time to decide who faces judgment.",
        "Silence falls. The time for words has passed. Point your finger and seal someone's fate.",
    ],
    "noElimination": [
        "The village cannot agree. No one is eliminated today.",
    ],
    "elimination": [
        "{eliminatedName} steps forward, defiant to the last. As they fall, their true nature "
        "is revealed: {role}.",
        "Justice? Or murder? Time will tell. {eliminatedName} was a {role}.",
    ],
    "hunterRevenge": [
        "With their dying breath, {hunterName} reveals they were the Hunter. "
        "{targetName} falls beside them.",
    ],
    "seerInvestigation": [
        "You focus your mind on {targetName}. The vision clears... they are {result}.",
    ],
    "villagersWin": [
        "The final wolf falls. Peace returns to {villageName}. VICTORY: VILLAGERS",
    ],
    "werewolvesWin": [
        "The wolves have won. {villageName} belongs to the beasts now. VICTORY: WEREWOLVES",
    ],
    "tannerWins": [
        "{tannerName} wanted to die all along. The Tanner wins!",
    ],
}

ROLE_REVEAL_MESSAGES: Dict[RoleType, str] = {
    RoleType.WEREWOLF: "A WEREWOLF! The beast is slain.",
    RoleType.VILLAGER: "An innocent Villager. Their blood is on your hands.",
    RoleType.SEER: "The Seer! Your eyes in the darkness are now blind.",
    RoleType.DOCTOR: "The Doctor! Who will protect you now?",
    RoleType.HUNTER: "The Hunter! They will not go quietly...",
    RoleType.WITCH: "The Witch! Their potions are forever lost.",
    RoleType.TANNER: "The Tanner! Wait... they WANTED to die.",
    RoleType.CUPID: "Cupid! The bonds they forged remain.",
    RoleType.FOOL: "The Fool! Innocent, but cursed to seem guilty.",
}

DEFAULT_NARRATION = "The story continues..."

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def fill_template(template: str, variables: Dict[str, str]) -> str:
    """Substitute {name} placeholders; unknown placeholders are left as-is."""
    return _PLACEHOLDER.sub(lambda m: str(variables.get(m.group(1), m.group(0))), template)


def get_narration(event: str, variables: Dict[str, str] = None,
                  rng: random.Random = None) -> str:
    """Get a random narration for a specific event."""
    templates = NARRATION_TEMPLATES.get(event)
    if not templates:
        return DEFAULT_NARRATION
    rng = rng or random.Random()
    return fill_template(rng.choice(templates), variables or {})


class TemplateNarrator:
    """Narrator callable backed by the bundled templates."""

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.Random()

    def __call__(self, event: str, variables: Dict[str, str]) -> str:
        return get_narration(event, variables, self.rng)

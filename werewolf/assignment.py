"""Role assignment: deal the distribution table's roles onto a roster."""

import random
from dataclasses import replace
from typing import List, Sequence

from .errors import InvariantViolation
from .models import Player
from .roles import ROLE_DISTRIBUTIONS, RoleType, get_role_distribution


def build_role_tokens(player_count: int, use_advanced_roles: bool = False) -> List[RoleType]:
    """
    Flat, unshuffled list of roles to deal.

    Werewolves first, then the special roles, then the advanced roles if
    enabled, padded with Villagers up to the player count.
    """
    distribution = get_role_distribution(player_count)
    counts = distribution.role_counts(use_advanced_roles, player_count=player_count)

    tokens: List[RoleType] = []
    for role in (RoleType.WEREWOLF, RoleType.SEER, RoleType.DOCTOR,
                 RoleType.HUNTER, RoleType.WITCH,
                 RoleType.TANNER, RoleType.CUPID, RoleType.FOOL):
        tokens.extend([role] * counts.get(role, 0))

    while len(tokens) < player_count:
        tokens.append(RoleType.VILLAGER)
    return tokens


def shuffle_roles(tokens: Sequence[RoleType], rng: random.Random) -> List[RoleType]:
    """Fisher-Yates shuffle into a new list."""
    shuffled = list(tokens)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def assign_roles(
    players: Sequence[Player],
    use_advanced_roles: bool = False,
    rng: random.Random = None,
) -> List[Player]:
    """
    Attach exactly one role to every player.

    Pure: returns new Player values in the input order and leaves the
    game state to the caller.
    """
    if any(p.role is not None for p in players):
        raise InvariantViolation("Roles are dealt once per game; roster already has roles")

    rng = rng or random.Random()
    tokens = shuffle_roles(build_role_tokens(len(players), use_advanced_roles), rng)
    if len(tokens) != len(players):
        raise InvariantViolation(
            f"Dealt {len(tokens)} roles to {len(players)} players"
        )
    return [replace(player, role=role) for player, role in zip(players, tokens)]


def supported_player_counts() -> List[int]:
    return [d.player_count for d in ROLE_DISTRIBUTIONS]

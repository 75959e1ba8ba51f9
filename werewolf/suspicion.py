"""Suspicion levels derived from the game's vote history."""

from dataclasses import replace
from typing import Dict, List

from .game_state import GameState, replace_players
from .models import Player
from .rules import DEFAULT_RULES, GameRules
from .voting import effective_votes


def votes_received(state: GameState) -> Dict[str, int]:
    """Votes each player has received across the whole game so far."""
    votes = list(state.vote_history) + effective_votes(state.day_votes)
    counts: Dict[str, int] = {}
    for vote in votes:
        if vote.target_id is not None:
            counts[vote.target_id] = counts.get(vote.target_id, 0) + 1
    return counts


def calculate_suspicion(state: GameState, player_id: str,
                        rules: GameRules = DEFAULT_RULES) -> int:
    """Simple formula: votes against x 20, capped at 100."""
    received = votes_received(state).get(player_id, 0)
    return min(rules.max_suspicion, received * rules.suspicion_per_vote)


def recompute_suspicion(state: GameState, rules: GameRules = DEFAULT_RULES) -> List[Player]:
    """
    Recompute every living player's suspicion from scratch.

    Dead players keep their last value.
    """
    counts = votes_received(state)
    return [
        replace(
            p,
            suspicion_level=min(rules.max_suspicion, counts.get(p.id, 0) * rules.suspicion_per_vote),
        ) if p.is_alive() else p
        for p in state.players
    ]


def update_suspicion_levels(state: GameState, rules: GameRules = DEFAULT_RULES) -> GameState:
    return replace_players(state, recompute_suspicion(state, rules))

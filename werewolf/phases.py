"""
Phase state machine.

Lobby -> Night -> Day -> Voting -> (Night | GameOver), with Night able to
end the game directly. GameOver is terminal. Each transition resets the
phase timer and the transient collections belonging to the new phase.
"""

import logging
from dataclasses import replace
from typing import Dict, FrozenSet, Optional

from .errors import GameOverError, IllegalTransitionError
from .game_state import GameState
from .models import Phase
from .voting import effective_votes
from .win_conditions import evaluate_win

logger = logging.getLogger("werewolf")


ALLOWED_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.LOBBY: frozenset({Phase.NIGHT}),
    Phase.NIGHT: frozenset({Phase.DAY, Phase.GAME_OVER}),
    Phase.DAY: frozenset({Phase.VOTING}),
    Phase.VOTING: frozenset({Phase.NIGHT, Phase.GAME_OVER}),
    Phase.GAME_OVER: frozenset(),
}

TIMED_PHASES = frozenset({Phase.NIGHT, Phase.DAY, Phase.VOTING})


def can_transition(from_phase: Phase, to_phase: Phase) -> bool:
    return Phase(to_phase) in ALLOWED_TRANSITIONS[Phase(from_phase)]


def transition(state: GameState, next_phase: Phase, now: float) -> GameState:
    """
    Move the game into next_phase.

    Resolving the outgoing phase's actions or votes is the caller's job;
    this only applies the entry resets.
    """
    next_phase = Phase(next_phase)
    if state.game_over or state.phase == Phase.GAME_OVER:
        raise GameOverError(f"Game {state.id} is over; no transitions out of GameOver")
    if not can_transition(state.phase, next_phase):
        raise IllegalTransitionError(state.phase.value, next_phase.value)

    updated = state
    # Leaving Voting archives the phase's votes for suspicion tracking
    if state.phase == Phase.VOTING:
        updated = replace(
            updated,
            vote_history=updated.vote_history + tuple(effective_votes(updated.day_votes)),
            day_votes=(),
        )

    if next_phase == Phase.NIGHT:
        night_number = 1 if state.phase == Phase.LOBBY else updated.night_number + 1
        updated = replace(
            updated,
            night_number=night_number,
            night_actions=(),
            voting_open=False,
        )

    elif next_phase == Phase.DAY:
        updated = replace(
            updated,
            day_number=updated.day_number + 1,
            night_actions=(),
            day_votes=(),
            voting_open=False,
            players=tuple(replace(p, voted_for=None) for p in updated.players),
        )

    elif next_phase == Phase.VOTING:
        updated = replace(updated, voting_open=True, day_votes=())

    elif next_phase == Phase.GAME_OVER:
        result = evaluate_win(updated)
        updated = replace(
            updated,
            voting_open=False,
            game_over=True,
            winner=result.winner,
            pending_hunter_ids=(),
        )

    updated = replace(
        updated,
        phase=next_phase,
        phase_time_limit=updated.settings.time_limit_for(next_phase),
        current_phase_start_time=now,
        updated_at=now,
    )
    logger.info(
        "Transition %s -> %s (day=%s night=%s)",
        state.phase.value, next_phase.value, updated.day_number, updated.night_number,
    )
    return updated


def elapsed_time(state: GameState, now: float) -> float:
    return max(0.0, now - state.current_phase_start_time)


def remaining_time(state: GameState, now: float) -> Optional[float]:
    """Seconds left in the current phase, or None for untimed phases."""
    if state.phase not in TIMED_PHASES or state.phase_time_limit <= 0:
        return None
    return max(0.0, state.phase_time_limit - elapsed_time(state, now))


def is_phase_expired(state: GameState, now: float) -> bool:
    """
    True once elapsed time reaches the phase limit.

    The caller must then force-resolve the phase, treating missing actions
    and votes as abstentions.
    """
    if state.game_over:
        return False
    remaining = remaining_time(state, now)
    return remaining is not None and remaining <= 0

"""Day vote submission and tallying."""

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from .errors import InvalidActionError
from .game_state import GameState, latest_submissions, update_player
from .models import DayVote, Phase
from .rules import (
    DEFAULT_RULES,
    TIE_BREAK_LOWEST_ID,
    TIE_BREAK_NO_ELIMINATION,
    GameRules,
)

logger = logging.getLogger("werewolf")


@dataclass(frozen=True)
class VoteResolution:
    """Outcome of a Voting phase."""
    eliminated_id: Optional[str]
    tally: Dict[str, int] = field(default_factory=dict)
    was_tie: bool = False
    tied: tuple = ()
    skips: int = 0

    def to_dict(self) -> Dict:
        return {
            "eliminated_id": self.eliminated_id,
            "tally": dict(self.tally),
            "was_tie": self.was_tie,
            "tied": list(self.tied),
            "skips": self.skips,
        }


def submit_vote(state: GameState, voter_id: str, target_id: Optional[str],
                timestamp: float) -> GameState:
    """
    Collect a vote from a player.

    target_id None is an explicit skip. Raises InvalidActionError without
    touching the state when the vote is rejected.
    """
    if state.game_over or state.phase != Phase.VOTING or not state.voting_open:
        raise InvalidActionError("Can only vote during the Voting phase", voter_id)

    voter = state.get_player_by_id(voter_id)
    if not voter or not voter.is_alive():
        raise InvalidActionError("Only alive players can vote", voter_id)

    if target_id is not None:
        target = state.get_player_by_id(target_id)
        if not target or not target.is_alive():
            raise InvalidActionError("Can only vote for alive players", voter_id)

    vote = DayVote(voter_id=voter_id, target_id=target_id, timestamp=timestamp)
    state = replace(state, day_votes=state.day_votes + (vote,))
    return update_player(state, voter_id, voted_for=target_id)


def effective_votes(votes) -> List[DayVote]:
    """Each voter's latest vote."""
    return latest_submissions(votes, key=lambda v: v.voter_id)


def voting_complete(state: GameState) -> bool:
    """True once every living player has voted or skipped."""
    voted = {v.voter_id for v in state.day_votes}
    return all(pid in voted for pid in state.alive_players)


def tally_votes(votes) -> Dict[str, int]:
    """Count non-skip votes per target."""
    vote_counts: Dict[str, int] = {}
    for vote in votes:
        if vote.target_id is not None:
            vote_counts[vote.target_id] = vote_counts.get(vote.target_id, 0) + 1
    return vote_counts


def resolve_votes(
    state: GameState,
    rules: GameRules = DEFAULT_RULES,
    rng: random.Random = None,
) -> VoteResolution:
    """
    Process all votes and determine who is eliminated.

    Pure: the caller applies the elimination.
    """
    rng = rng or random.Random()
    votes = [
        v for v in effective_votes(state.day_votes)
        if state.is_alive(v.voter_id)
    ]
    skips = sum(1 for v in votes if v.target_id is None)
    vote_counts = {
        pid: n for pid, n in tally_votes(votes).items() if state.is_alive(pid)
    }

    if not vote_counts:
        logger.info("Day %s vote: no candidates (%d skips)", state.day_number, skips)
        return VoteResolution(eliminated_id=None, tally={}, was_tie=False, skips=skips)

    # Find player(s) with most votes
    max_votes = max(vote_counts.values())
    candidates = sorted(pid for pid, count in vote_counts.items() if count == max_votes)

    if len(candidates) == 1:
        eliminated_id = candidates[0]
        was_tie = False
    elif rules.tie_break == TIE_BREAK_NO_ELIMINATION:
        eliminated_id = None
        was_tie = True
    elif rules.tie_break == TIE_BREAK_LOWEST_ID:
        eliminated_id = candidates[0]
        was_tie = True
    else:
        eliminated_id = rng.choice(candidates)
        was_tie = True

    logger.info(
        "Day %s vote: tally=%s tie=%s eliminated=%s",
        state.day_number, vote_counts, was_tie, eliminated_id,
    )
    return VoteResolution(
        eliminated_id=eliminated_id,
        tally=vote_counts,
        was_tie=was_tie,
        tied=tuple(candidates) if was_tie else (),
        skips=skips,
    )


def get_vote_summary(state: GameState) -> Dict:
    """Get a summary of current votes, keyed by player name."""
    votes = effective_votes(state.day_votes)
    summary = {
        "total_votes": len(votes),
        "expected_votes": len(state.alive_players),
        "votes_by_target": {},
        "abstentions": 0,
    }
    for vote in votes:
        if vote.target_id is None:
            summary["abstentions"] += 1
        else:
            target = state.get_player_by_id(vote.target_id)
            name = target.name if target else vote.target_id
            summary["votes_by_target"][name] = summary["votes_by_target"].get(name, 0) + 1
    return summary

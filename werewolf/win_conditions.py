"""Win condition checking logic."""

from dataclasses import dataclass
from typing import List, Optional

from .game_state import GameState
from .models import EliminationMethod
from .roles import Allegiance, RoleType


@dataclass(frozen=True)
class WinResult:
    over: bool
    winner: Optional[Allegiance] = None

    def to_dict(self):
        return {"over": self.over, "winner": self.winner.value if self.winner else None}


def evaluate_win(game_state: GameState) -> WinResult:
    """
    Check if the game has ended and who won.

    The Tanner is neutral and counts for neither side.
    """
    alive_players = game_state.get_alive_players()

    werewolf_count = len([p for p in alive_players if p.role == RoleType.WEREWOLF])
    villager_count = len([
        p for p in alive_players
        if p.role not in (RoleType.WEREWOLF, RoleType.TANNER)
    ])

    # Villagers win if all werewolves are eliminated
    if werewolf_count == 0:
        return WinResult(over=True, winner=Allegiance.VILLAGERS)

    # Werewolves win as soon as they are not outnumbered
    if werewolf_count >= villager_count:
        return WinResult(over=True, winner=Allegiance.WEREWOLVES)

    # Game continues
    return WinResult(over=False)


def tanners_won_by_vote(game_state: GameState) -> List[str]:
    """
    Tanners whose private win is satisfied: eliminated by the day vote.

    Independent of evaluate_win; it never changes the Villager/Werewolf
    outcome for everyone else.
    """
    return [
        record.player_id for record in game_state.elimination_records
        if record.role == RoleType.TANNER and record.method == EliminationMethod.VOTE
    ]

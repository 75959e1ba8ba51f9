from conftest import make_state
from werewolf.game_state import kill_player
from werewolf.models import EliminationMethod, Phase
from werewolf.roles import Allegiance, RoleType
from werewolf.win_conditions import evaluate_win, tanners_won_by_vote


def roster(**counts):
    roles = {}
    for role_name, n in counts.items():
        for i in range(n):
            roles[f"{role_name}{i}"] = RoleType[role_name.upper()]
    return roles


def test_villagers_win_when_no_wolves():
    state = make_state(roster(villager=3, seer=1), Phase.DAY)
    result = evaluate_win(state)
    assert result.over is True
    assert result.winner == Allegiance.VILLAGERS


def test_werewolves_win_at_parity():
    state = make_state(roster(werewolf=2, villager=2), Phase.DAY)
    result = evaluate_win(state)
    assert result.over is True
    assert result.winner == Allegiance.WEREWOLVES


def test_game_continues_while_outnumbered():
    state = make_state(roster(werewolf=1, villager=4), Phase.DAY)
    result = evaluate_win(state)
    assert result.over is False
    assert result.winner is None


def test_tanner_counts_for_neither_side():
    # 1 wolf vs 1 villager + tanner: the tanner does not keep the village alive
    state = make_state(roster(werewolf=1, villager=1, tanner=1), Phase.DAY)
    assert evaluate_win(state).winner == Allegiance.WEREWOLVES


def test_fool_counts_as_villager():
    state = make_state(roster(werewolf=1, villager=1, fool=1), Phase.DAY)
    assert evaluate_win(state).over is False


def test_dead_players_do_not_count():
    state = make_state(roster(werewolf=1, villager=3), Phase.DAY)
    state = kill_player(state, "werewolf0", EliminationMethod.VOTE)
    assert evaluate_win(state).winner == Allegiance.VILLAGERS


def test_tanner_wins_only_by_vote():
    state = make_state(roster(werewolf=1, villager=3, tanner=2), Phase.VOTING)
    state = kill_player(state, "tanner0", EliminationMethod.VOTE)
    state = kill_player(state, "tanner1", EliminationMethod.WEREWOLF)
    assert tanners_won_by_vote(state) == ["tanner0"]
    # The side-channel win leaves the main outcome alone
    assert evaluate_win(state).over is False

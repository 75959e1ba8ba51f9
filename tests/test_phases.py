import pytest

from conftest import make_state
from werewolf.errors import GameOverError, IllegalTransitionError
from werewolf.game_state import GameState, kill_player
from werewolf.models import EliminationMethod, GameSettings, Phase
from werewolf.night_actions import submit_night_action
from werewolf.phases import can_transition, is_phase_expired, remaining_time, transition
from werewolf.roles import Allegiance, RoleType
from werewolf.voting import submit_vote


def test_lobby_to_night_starts_first_night(classic_roles):
    state = make_state(classic_roles, Phase.LOBBY)
    state = transition(state, Phase.NIGHT, now=50.0)
    assert state.phase == Phase.NIGHT
    assert state.night_number == 1
    assert state.day_number == 0
    assert state.night_actions == ()
    assert state.current_phase_start_time == 50.0
    assert state.phase_time_limit == state.settings.night_phase_time


def test_night_to_day_resets(night_state):
    state = submit_night_action(night_state, "wolf1", "vil1", 1.0)
    state = transition(state, Phase.DAY, now=100.0)
    assert state.phase == Phase.DAY
    assert state.day_number == 1
    assert state.night_actions == ()
    assert state.day_votes == ()
    assert state.voting_open is False
    assert state.phase_time_limit == 180


def test_day_to_voting_opens_voting(classic_roles):
    state = make_state(classic_roles, Phase.DAY, voting_open=False)
    state = transition(state, Phase.VOTING, now=10.0)
    assert state.voting_open is True
    assert state.day_votes == ()


def test_voting_to_night_resets_and_archives(voting_state):
    state = submit_vote(voting_state, "vil1", "wolf1", 1.0)
    state = submit_vote(state, "vil1", "wolf2", 2.0)
    prior_night = state.night_number

    state = transition(state, Phase.NIGHT, now=10.0)
    assert state.day_votes == ()
    assert state.night_number == prior_night + 1
    assert state.night_actions == ()
    assert [(v.voter_id, v.target_id) for v in state.vote_history] == [("vil1", "wolf2")]


def test_voted_for_cleared_each_day(voting_state):
    state = submit_vote(voting_state, "vil1", "wolf1", 1.0)
    state = transition(state, Phase.NIGHT, now=1.0)
    state = transition(state, Phase.DAY, now=2.0)
    assert state.get_player_by_id("vil1").voted_for is None


def test_game_over_records_winner():
    state = make_state({"wolf": RoleType.WEREWOLF, "vil": RoleType.VILLAGER}, Phase.VOTING)
    state = transition(state, Phase.GAME_OVER, now=5.0)
    assert state.game_over is True
    assert state.winner == Allegiance.WEREWOLVES
    assert state.phase_time_limit == 0


def test_game_over_is_terminal():
    state = make_state({"wolf": RoleType.WEREWOLF, "vil": RoleType.VILLAGER}, Phase.NIGHT)
    state = transition(state, Phase.GAME_OVER, now=5.0)
    with pytest.raises(GameOverError):
        transition(state, Phase.NIGHT, now=6.0)
    with pytest.raises(GameOverError):
        kill_player(state, "vil", EliminationMethod.VOTE)


@pytest.mark.parametrize("from_phase, to_phase", [
    (Phase.LOBBY, Phase.DAY),
    (Phase.NIGHT, Phase.VOTING),
    (Phase.DAY, Phase.NIGHT),
    (Phase.DAY, Phase.GAME_OVER),
    (Phase.VOTING, Phase.DAY),
])
def test_illegal_transitions(classic_roles, from_phase, to_phase):
    state = make_state(classic_roles, from_phase)
    assert not can_transition(from_phase, to_phase)
    with pytest.raises(IllegalTransitionError):
        transition(state, to_phase, now=0.0)


def test_phase_expiry():
    state = GameState(phase=Phase.NIGHT, current_phase_start_time=100.0, phase_time_limit=60)
    assert remaining_time(state, 130.0) == 30.0
    assert not is_phase_expired(state, 159.9)
    assert is_phase_expired(state, 160.0)


def test_untimed_phases_never_expire():
    settings = GameSettings(night_phase_time=0)
    state = GameState(phase=Phase.NIGHT, settings=settings, phase_time_limit=0)
    assert remaining_time(state, 10_000.0) is None
    assert not is_phase_expired(state, 10_000.0)
    assert not is_phase_expired(GameState(phase=Phase.LOBBY, phase_time_limit=180), 10_000.0)

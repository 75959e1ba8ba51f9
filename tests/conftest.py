import random

import pytest

from werewolf.game_state import GameState, replace_players
from werewolf.models import AIDifficulty, GameSettings, Phase, Player
from werewolf.roles import RoleType


class FakeClock:
    """Manually advanced clock for engine and timer tests."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds
        return self.now


def make_player(player_id, role=None, **kwargs):
    kwargs.setdefault("name", player_id.capitalize())
    return Player(id=player_id, role=role, **kwargs)


def make_state(roles, phase=Phase.NIGHT, **kwargs):
    """
    Build a state from {player_id: role}.

    Night states default to night 1, day 0; Day and Voting to day 1.
    """
    if phase == Phase.NIGHT:
        kwargs.setdefault("night_number", 1)
    elif phase in (Phase.DAY, Phase.VOTING):
        kwargs.setdefault("night_number", 1)
        kwargs.setdefault("day_number", 1)
    kwargs.setdefault("voting_open", phase == Phase.VOTING)
    state = GameState(id="game-1", phase=phase, **kwargs)
    players = [make_player(pid, role) for pid, role in roles.items()]
    return replace_players(state, players)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def classic_roles():
    """Seven seats: two wolves, seer, doctor, hunter and two villagers."""
    return {
        "wolf1": RoleType.WEREWOLF,
        "wolf2": RoleType.WEREWOLF,
        "seer": RoleType.SEER,
        "doc": RoleType.DOCTOR,
        "hunter": RoleType.HUNTER,
        "vil1": RoleType.VILLAGER,
        "vil2": RoleType.VILLAGER,
    }


@pytest.fixture
def night_state(classic_roles):
    return make_state(classic_roles, Phase.NIGHT)


@pytest.fixture
def voting_state(classic_roles):
    return make_state(classic_roles, Phase.VOTING)


@pytest.fixture
def lobby_state():
    """Lobby-phase state with six role-less humans."""
    settings = GameSettings(ai_difficulty=AIDifficulty.BEGINNER)
    state = GameState(id="game-1", phase=Phase.LOBBY, settings=settings, village_name="Ravencrest")
    return replace_players(state, [make_player(f"p{i}") for i in range(1, 7)])

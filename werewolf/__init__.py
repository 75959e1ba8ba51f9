"""Werewolf game rules engine."""

from .engine import GameEngine
from .errors import GameOverError, IllegalTransitionError, InvalidActionError, InvariantViolation
from .game_state import GameState
from .lobby import Lobby, create_lobby, initialize_game
from .models import Phase, Player
from .roles import Allegiance, RoleType
from .rules import DEFAULT_RULES, GameRules

__all__ = [
    "GameEngine",
    "GameState",
    "GameRules",
    "DEFAULT_RULES",
    "Lobby",
    "create_lobby",
    "initialize_game",
    "Phase",
    "Player",
    "RoleType",
    "Allegiance",
    "InvalidActionError",
    "InvariantViolation",
    "IllegalTransitionError",
    "GameOverError",
]

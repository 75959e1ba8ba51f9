"""Configuration module for server paths and default game settings."""

import logging
import os

from werewolf.models import AIDifficulty, GameSettings
from werewolf.rules import GameRules


# Server configuration
LOG_DIR = os.environ.get("WEREWOLF_LOG_DIR", "logs")
LOG_LEVEL = getattr(logging, os.environ.get("WEREWOLF_LOG_LEVEL", "INFO").upper(), logging.INFO)
DATA_DIR = os.environ.get("WEREWOLF_DATA_DIR", "data")
PORT = int(os.environ.get("WEREWOLF_PORT", "5000"))

# Seconds between phase-expiry checks in the game watcher
PHASE_POLL_INTERVAL = 1.0

# Environment overrides for GameSettings: variable name -> (field, parser)
_SETTINGS_ENV = {
    "WEREWOLF_MIN_PLAYERS": ("min_players", int),
    "WEREWOLF_MAX_PLAYERS": ("max_players", int),
    "WEREWOLF_NIGHT_TIME": ("night_phase_time", int),
    "WEREWOLF_DAY_TIME": ("day_discussion_time", int),
    "WEREWOLF_VOTING_TIME": ("voting_phase_time", int),
    "WEREWOLF_AI_DIFFICULTY": ("ai_difficulty", AIDifficulty),
    "WEREWOLF_AI_FILL": ("ai_player_fill", lambda v: v.lower() in ("1", "true", "yes")),
    "WEREWOLF_ADVANCED_ROLES": ("advanced_roles", lambda v: v.lower() in ("1", "true", "yes")),
}


def load_settings_from_env(environ=None) -> GameSettings:
    """Default lobby settings with WEREWOLF_* environment overrides applied."""
    environ = os.environ if environ is None else environ
    overrides = {}
    for name, (field_name, parse) in _SETTINGS_ENV.items():
        if name in environ:
            try:
                overrides[field_name] = parse(environ[name])
            except ValueError:
                raise ValueError(f"Invalid value for {name}: {environ[name]!r}")
    return GameSettings(**overrides)


def load_rules_from_env(environ=None) -> GameRules:
    """House rules; only the tie-break policy is configurable from the environment."""
    environ = os.environ if environ is None else environ
    return GameRules(tie_break=environ.get("WEREWOLF_TIE_BREAK", "random"))

"""Centralized logging for the Werewolf engine.

This module provides context-aware logging with game state tracking.
All logs are written to both file and console in plain text format.
"""

import logging
import traceback
import sys
from pathlib import Path
from typing import Optional, Dict, Any
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler


LOGGER_NAME = "werewolf"

# ============================================================================
# SECTION 1: Context Management (Greenlet-Safe)
# ============================================================================

_game_context: ContextVar[Dict[str, Any]] = ContextVar('game_context', default={})


def set_game_context(
    game_id: str = None,
    phase: str = None,
    day_number: int = None,
    night_number: int = None,
    player_id: str = None
):
    """Update the current game context (partial updates supported).

    Args:
        game_id: Game identifier
        phase: Current phase (Lobby/Night/Day/Voting/GameOver)
        day_number: Current day number
        night_number: Current night number
        player_id: Player the current operation is about
    """
    context = _game_context.get().copy()

    if game_id is not None:
        context['game_id'] = game_id
    if phase is not None:
        context['phase'] = phase
    if day_number is not None:
        context['day_number'] = day_number
    if night_number is not None:
        context['night_number'] = night_number
    if player_id is not None:
        context['player_id'] = player_id

    _game_context.set(context)


def set_context_from_state(game_state):
    """Copy game id, phase and counters from a GameState into the context."""
    set_game_context(
        game_id=game_state.id,
        phase=game_state.phase.value,
        day_number=game_state.day_number,
        night_number=game_state.night_number,
    )


def get_game_context() -> Dict[str, Any]:
    """Get the current game context."""
    return _game_context.get().copy()


def clear_game_context():
    """Clear the game context (for cleanup)."""
    _game_context.set({})


def format_context() -> str:
    """Format context for log messages: 'game_id:phase:day:night:player'"""
    context = _game_context.get()

    if not context:
        return "no-context"

    parts = [
        context.get('game_id', 'unknown'),
        context.get('phase', 'unknown'),
        str(context.get('day_number', '?')),
        str(context.get('night_number', '?')),
        context.get('player_id', '-'),
    ]
    return ':'.join(parts)


# ============================================================================
# SECTION 2: Logger Configuration
# ============================================================================

class ContextualFormatter(logging.Formatter):
    """Formatter that includes game context in log messages."""

    def format(self, record):
        record.context = format_context()
        return super().format(record)


def initialize_logging(log_dir: Optional[str] = "logs", log_level: int = logging.INFO):
    """Initialize the logging system with file and console handlers.

    Args:
        log_dir: Directory for log files; None logs to the console only
        log_level: Minimum log level to record (default: INFO)
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    formatter = ContextualFormatter(
        fmt="[%(asctime)s] [%(levelname)s] [%(context)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        # File handler with rotation (10MB max, 5 backups)
        file_handler = RotatingFileHandler(
            log_path / "werewolf.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    logger.info("Logging system initialized")


# ============================================================================
# SECTION 3: High-Level Logging Functions
# ============================================================================

def _log_with_player(level: int, message: str, player_id: str = None,
                     extra_context: Dict[str, Any] = None):
    logger = _get_logger()

    # Temporarily override player_id in context if provided
    original_context = None
    if player_id is not None:
        original_context = get_game_context()
        set_game_context(player_id=player_id)

    try:
        msg_parts = [message]
        if extra_context:
            for key, value in extra_context.items():
                msg_parts.append(f"{key}: {value}")
        logger.log(level, "\n".join(msg_parts))
    finally:
        if original_context is not None:
            _game_context.set(original_context)


def log_exception(
    exception: Exception,
    message: str,
    player_id: str = None,
    extra_context: Dict[str, Any] = None
):
    """Log an exception with full traceback and context.

    Args:
        exception: The caught exception
        message: Descriptive message about what was being attempted
        player_id: Optional player id (overrides context)
        extra_context: Additional context to include
    """
    _log_with_player(
        logging.ERROR,
        f"{message}\nTraceback:\n{_format_exception(exception)}",
        player_id,
        extra_context,
    )


def log_rejected(error: Exception, player_id: str = None, extra_context: Dict[str, Any] = None):
    """Log a rejected submission. Rejections are expected and non-fatal."""
    _log_with_player(logging.WARNING, f"Rejected: {error}", player_id, extra_context)


def log_warning(message: str, player_id: str = None, extra_context: Dict[str, Any] = None):
    """Log a warning message with context."""
    _log_with_player(logging.WARNING, message, player_id, extra_context)


def log_info(message: str, player_id: str = None, extra_context: Dict[str, Any] = None):
    """Log an info message with context."""
    _log_with_player(logging.INFO, message, player_id, extra_context)


# ============================================================================
# SECTION 4: Internal Helpers
# ============================================================================

def _get_logger() -> logging.Logger:
    """Get the configured logger instance."""
    return logging.getLogger(LOGGER_NAME)


def _format_exception(exception: Exception) -> str:
    """Format exception with full traceback."""
    return ''.join(traceback.format_exception(
        type(exception), exception, exception.__traceback__
    ))

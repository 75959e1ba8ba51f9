"""Exception types raised by the rules engine."""


class InvalidActionError(ValueError):
    """
    Raised when a caller submits input the rules reject.

    Non-fatal: the game state is left untouched and the caller should
    ignore the submission or ask for a new one.
    """

    def __init__(self, message: str, player_id: str = None):
        super().__init__(message)
        self.player_id = player_id


class InvariantViolation(AssertionError):
    """Raised when engine or caller code breaks a structural game invariant."""
    pass


class IllegalTransitionError(InvariantViolation):
    """Raised for a phase transition the state machine does not allow."""

    def __init__(self, from_phase, to_phase):
        super().__init__(f"Illegal phase transition: {from_phase} -> {to_phase}")
        self.from_phase = from_phase
        self.to_phase = to_phase


class GameOverError(InvariantViolation):
    """Raised when something tries to change a finished game."""
    pass

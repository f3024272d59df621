"""Error types raised outside the pure engine."""


class RecoveryEngineError(Exception):
    """Base error for the recovery engine package."""


class InvalidDateError(RecoveryEngineError, ValueError):
    """Raised when a user-supplied as-of date cannot be parsed."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid date: {value!r} (expected YYYY-MM-DD)")

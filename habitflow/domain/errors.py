"""
Error taxonomy shared by the sync layer and its callers.

Collaborator exceptions (SQLAlchemy, pydantic) never reach presentation code;
the sync layer converts them into one of these classes.
"""

from typing import Optional, Sequence


class HabitFlowError(Exception):
    """Base class for all classified errors"""


class ConfigurationError(HabitFlowError):
    """Required backend configuration is missing. Not retryable."""

    def __init__(self, missing: Sequence[str] = ()):
        self.missing = tuple(missing)
        detail = ", ".join(self.missing) if self.missing else "backend"
        super().__init__(f"Backend configuration missing: {detail}")


class NotAuthenticatedError(HabitFlowError):
    """An operation needs a signed-in identity and there is none."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class DuplicateEntryError(HabitFlowError):
    """The habit already has an entry for that calendar day."""

    def __init__(self, habit_id: str, day=None):
        self.habit_id = habit_id
        self.day = day
        super().__init__("Habit already completed today")


class RemoteError(HabitFlowError):
    """Generic failure reported by the persistence backend."""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)


class RecordNotFoundError(RemoteError):
    pass


class ValidationFailedError(RemoteError):
    pass


class ImportFormatError(HabitFlowError):
    """An import document could not be applied. Nothing was changed."""

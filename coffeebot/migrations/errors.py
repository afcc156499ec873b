"""
Errors raised while applying migration steps
"""
from typing import Optional


class MigrationError(Exception):
    """Base class for migration failures"""

    def __init__(self, level: int, message: str):
        super().__init__(message)
        self.level = level


class ConflictError(MigrationError):
    """Ledger append would duplicate a level or leave a gap"""

    def __init__(self, level: int, current_level: Optional[int]):
        super().__init__(
            level,
            f"Cannot record migration level {level}: ledger is at {current_level}"
        )
        self.current_level = current_level


class StepExecutionError(MigrationError):
    """An operation inside a step failed; the step was rolled back"""

    def __init__(self, level: int, reason: str):
        super().__init__(level, f"Migration level {level} failed: {reason}")
        self.reason = reason


class PreconditionMismatch(MigrationError):
    """The ledger already moved past the step when re-checked in its transaction"""

    def __init__(self, level: int, current_level: Optional[int]):
        super().__init__(
            level,
            f"Migration level {level} no longer applicable: ledger is at {current_level}"
        )
        self.current_level = current_level

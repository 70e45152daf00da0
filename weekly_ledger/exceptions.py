"""
Ledger Error Taxonomy

DESIGN DECISION: Every failure a caller can act on has its own type.
The presentation layer decides what to show; the ledger never retries.

- ValidationError: bad input, always recoverable
- ClosedWeekError: write attempted while the current week is closed
- AlreadyClosedError: manual close of a week that is already closed
- PersistenceInconsistencyError: a write did not durably take effect
"""

from typing import Optional

from weekly_ledger.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for week ledger operations."""
    pass


class ValidationError(LedgerError, ValueError):
    """Input rejected before any state was touched."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        issue_type: str = "invalid_value",
    ):
        super().__init__(message)
        self.field = field
        self.issue = ValidationIssue(
            field=field or "input",
            issue_type=issue_type,
            message=message,
            severity="error",
        )


class ClosedWeekError(LedgerError):
    """The current week is closed; no transaction was created."""

    def __init__(self, week_id: str):
        super().__init__(
            "The current week is closed. New expenses cannot be added."
        )
        self.week_id = week_id


class AlreadyClosedError(LedgerError):
    """A manual close targeted a week that is already closed."""

    def __init__(self, week_id: str):
        super().__init__("The current week is already closed.")
        self.week_id = week_id


class PersistenceInconsistencyError(LedgerError):
    """Re-reading a write showed it did not take effect."""

    def __init__(self, key: str, message: str):
        super().__init__(message)
        self.key = key

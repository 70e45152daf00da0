"""Input validation package."""

from weekly_ledger.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]

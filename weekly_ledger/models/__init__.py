"""
Data Models Package

This package contains all Pydantic models used by the Weekly Ledger.
All data flowing through the ledger must conform to these schemas.
"""

from weekly_ledger.models.ledger import (
    AutoCloseConfig,
    CurrentWeek,
    Transaction,
    ValidationIssue,
    WeekSummary,
    generate_transaction_id,
    generate_week_id,
)
from weekly_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AutoCloseConfig",
    "CurrentWeek",
    "Transaction",
    "ValidationIssue",
    "WeekSummary",
    "generate_transaction_id",
    "generate_week_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]

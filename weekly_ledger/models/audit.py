"""
Audit Models for the Weekly Ledger

Every state change in the ledger is logged for audit purposes.
This provides:
1. Complete traceability of expenses and week closes
2. Debugging information when attribution looks wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger mutation has its own event type.
    """
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_REMOVED = "transaction_removed"

    # Week lifecycle
    WEEK_CLOSED = "week_closed"
    WEEK_CLOSE_REJECTED = "week_close_rejected"
    NEXT_CLOSE_DATE_SET = "next_close_date_set"

    # Settings
    AUTO_CLOSE_CONFIG_UPDATED = "auto_close_config_updated"
    WEEKLY_LIMIT_UPDATED = "weekly_limit_updated"

    # System events
    PERSISTENCE_INCONSISTENCY = "persistence_inconsistency"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (local time)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'week', 'settings')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one scheduler tick)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(txn_id, week_id, amount)
        event = AuditEventBuilder.week_closed(week_id, new_week_id, is_manual=True)
    """

    @staticmethod
    def transaction_created(
        transaction_id: str,
        week_id: str,
        amount: str,
        rule: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Expense of {amount} recorded in week {week_id}",
            details={
                "week_id": week_id,
                "amount": amount,
                "attribution_rule": rule,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_rejected(
        reason: str,
        week_id: Optional[str] = None,
        field: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="week" if week_id else "transaction",
            entity_id=week_id,
            description=f"Expense rejected: {reason}",
            details={
                "field": field,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_removed(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REMOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Expense removed",
            is_user_action=True,
        )

    @staticmethod
    def week_closed(
        week_id: str,
        new_week_id: Optional[str],
        next_close_date: Optional[str],
        is_manual: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        mode = "manually" if is_manual else "automatically"
        return AuditEvent(
            event_type=AuditEventType.WEEK_CLOSED,
            entity_type="week",
            entity_id=week_id,
            correlation_id=correlation_id,
            description=f"Week closed {mode}",
            details={
                "new_week_id": new_week_id,
                "next_close_date": next_close_date,
                "is_manual": is_manual,
            },
            is_user_action=is_manual,
        )

    @staticmethod
    def week_close_rejected(week_id: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WEEK_CLOSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="week",
            entity_id=week_id,
            description=f"Week close rejected: {reason}",
            is_user_action=True,
        )

    @staticmethod
    def next_close_date_set(next_close_date: str, day_of_week: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NEXT_CLOSE_DATE_SET,
            entity_type="settings",
            description=f"Next close scheduled for {next_close_date}",
            details={
                "next_close_date": next_close_date,
                "day_of_week": day_of_week,
            },
        )

    @staticmethod
    def auto_close_config_updated(config: dict) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTO_CLOSE_CONFIG_UPDATED,
            entity_type="settings",
            description="Automatic close schedule updated",
            details=config,
            is_user_action=True,
        )

    @staticmethod
    def weekly_limit_updated(limit: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.WEEKLY_LIMIT_UPDATED,
            entity_type="settings",
            description=(
                f"Weekly limit set to {limit}" if limit is not None
                else "Weekly limit removed"
            ),
            details={
                "limit": limit,
            },
            is_user_action=True,
        )

    @staticmethod
    def persistence_inconsistency(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_INCONSISTENCY,
            severity=AuditSeverity.CRITICAL,
            entity_type="storage",
            entity_id=key,
            description=f"Write to '{key}' did not take effect",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

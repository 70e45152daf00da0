"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of expenses and week closes
2. Debugging capability when an expense lands in an unexpected week
3. User can see history of their interactions

The audit logger:
- Is async so it can share a remote backend with the ledger
- Gracefully handles failures (a failed audit write never fails a ledger operation)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from weekly_ledger.models.audit import AuditEvent, AuditEventBuilder
from weekly_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_created(
        self,
        transaction_id: str,
        week_id: str,
        amount: str,
        rule: str,
    ) -> None:
        """Log a recorded expense and the rule that picked its week."""
        await self.log(AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            week_id=week_id,
            amount=amount,
            rule=rule,
        ))

    async def log_transaction_rejected(
        self,
        reason: str,
        week_id: Optional[str] = None,
        field: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_rejected(
            reason=reason,
            week_id=week_id,
            field=field,
        ))

    async def log_transaction_removed(self, transaction_id: str) -> None:
        await self.log(AuditEventBuilder.transaction_removed(transaction_id))

    async def log_week_closed(
        self,
        week_id: str,
        new_week_id: Optional[str],
        next_close_date: Optional[str],
        is_manual: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a week close."""
        await self.log(AuditEventBuilder.week_closed(
            week_id=week_id,
            new_week_id=new_week_id,
            next_close_date=next_close_date,
            is_manual=is_manual,
            correlation_id=correlation_id,
        ))

    async def log_week_close_rejected(self, week_id: str, reason: str) -> None:
        await self.log(AuditEventBuilder.week_close_rejected(week_id, reason))

    async def log_next_close_date_set(
        self,
        next_close_date: str,
        day_of_week: int,
    ) -> None:
        await self.log(AuditEventBuilder.next_close_date_set(
            next_close_date=next_close_date,
            day_of_week=day_of_week,
        ))

    async def log_auto_close_config_updated(self, config: dict) -> None:
        await self.log(AuditEventBuilder.auto_close_config_updated(config))

    async def log_weekly_limit_updated(self, limit: Optional[str]) -> None:
        await self.log(AuditEventBuilder.weekly_limit_updated(limit))

    async def log_persistence_inconsistency(
        self,
        key: str,
        error_message: str,
    ) -> None:
        """Log a write that did not survive being read back."""
        await self.log(AuditEventBuilder.persistence_inconsistency(
            key=key,
            error_message=error_message,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new trigger (e.g., one scheduler tick).
    Pass it through all subsequent operations.
    """
    return uuid4()

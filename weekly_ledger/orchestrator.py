"""
Application Wiring for the Weekly Ledger

Builds the storage backend named in the settings and ties the ledger, the
audit logger and the auto-close scheduler together.

DESIGN DECISION: A remote backend that cannot be configured must not stop
the user from recording expenses. Google Sheets failures fall back to the
local JSON file and say so in the log.
"""

import logging
from typing import Optional

import structlog

from weekly_ledger.audit import AuditLogger
from weekly_ledger.config import get_settings
from weekly_ledger.ledger import WeekLedger
from weekly_ledger.scheduler import AutoCloseScheduler
from weekly_ledger.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
)

logger = structlog.get_logger(__name__)


def create_storage(
    backend: Optional[str] = None,
) -> tuple[KeyValueStoreInterface, Optional[AuditStorageInterface]]:
    """
    Build the ledger store and, where the backend has one, its audit store.

    Args:
        backend: "memory", "json_file" or "google_sheets".
                 Defaults to LEDGER_STORAGE_BACKEND.

    Returns:
        (key_value_store, audit_storage)
    """
    settings = get_settings().ledger
    backend = backend or settings.storage_backend

    if backend == "memory":
        return InMemoryKeyValueStore(), InMemoryAuditStorage()

    if backend == "google_sheets":
        try:
            from weekly_ledger.services.storage.google_sheets import (
                GoogleSheetsAuditStorage,
                GoogleSheetsClient,
                GoogleSheetsKeyValueStore,
            )

            client = GoogleSheetsClient()
            client.get_spreadsheet()
            return GoogleSheetsKeyValueStore(client), GoogleSheetsAuditStorage(client)
        except Exception as e:
            # Not configured or unreachable - keep working locally
            logger.warning(
                "google_sheets_unavailable",
                error=str(e),
                fallback="json_file",
            )
            backend = "json_file"

    if backend == "json_file":
        return JsonFileKeyValueStore(settings.data_file), None

    raise ValueError(f"Unknown storage backend: {backend}")


def create_app_components(
    backend: Optional[str] = None,
) -> tuple[WeekLedger, AutoCloseScheduler, AuditLogger]:
    """
    Factory function to create all application components.

    Returns:
        (ledger, scheduler, audit_logger)
    """
    settings = get_settings()
    logging.basicConfig(level=settings.app.log_level)

    storage, audit_storage = create_storage(backend)
    audit_logger = AuditLogger(audit_storage)

    ledger = WeekLedger(
        storage=storage,
        audit_logger=audit_logger,
        settings=settings.ledger,
    )
    scheduler = AutoCloseScheduler(
        ledger,
        interval_seconds=settings.scheduler.interval_seconds,
    )
    return ledger, scheduler, audit_logger

"""Shared fixtures for the ledger tests.

The ledger reads "now" through an injected clock, so every test pins time
with `FakeClock` instead of depending on the day it runs. Async code is
driven with `run_async`; each call gets its own event loop.
"""

import asyncio
import time
from datetime import datetime, timedelta

import pytest

from weekly_ledger.audit import AuditLogger
from weekly_ledger.config import LedgerSettings
from weekly_ledger.ledger import WeekLedger
from weekly_ledger.services.storage import InMemoryAuditStorage, InMemoryKeyValueStore


def run_async(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


class FakeClock:
    """Settable stand-in for datetime.now."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def ledger_settings(**overrides) -> LedgerSettings:
    values = {
        "storage_backend": "memory",
        "key_prefix": "finance",
        "default_auto_close_enabled": True,
        "default_auto_close_day": 0,
        "default_auto_close_hour": 12,
        "history_limit": 10,
    }
    values.update(overrides)
    return LedgerSettings(**values)


@pytest.fixture
def clock():
    # Wednesday
    return FakeClock(datetime(2024, 6, 5, 10, 0))


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def ledger(store, audit_logger, clock):
    return WeekLedger(
        storage=store,
        audit_logger=audit_logger,
        clock=clock,
        settings=ledger_settings(),
    )


@pytest.fixture
def local_timezone(monkeypatch):
    """Switch the process-local timezone for one test."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")

    def use(name: str) -> None:
        monkeypatch.setenv("TZ", name)
        time.tzset()

    yield use
    monkeypatch.undo()
    time.tzset()

"""
Week Ledger

The single source of truth for expense attribution, week boundaries and
week closing. All state lives in the injected key-value store under the
keys listed in `StorageKeys`.

ATTRIBUTION (first match wins):
1. Current week closed          -> ClosedWeekError, nothing written
2. Entry date today or later    -> current week
3. Entry date in current period -> current week
4. Standard week of the date is closed -> current week (redirect forward)
5. Otherwise                    -> the standard week of the date

DESIGN DECISION: Writes are serialized behind one asyncio lock. A close
appends to the closed set, verifies it by reading it back, then moves the
current-week pointer; no other write can run in between, so an expense is
never attributed against a half-finished close.
"""

import asyncio
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Optional
from uuid import UUID

import structlog

from weekly_ledger.audit import AuditLogger
from weekly_ledger.config import LedgerSettings, get_settings
from weekly_ledger.exceptions import (
    AlreadyClosedError,
    ClosedWeekError,
    PersistenceInconsistencyError,
    ValidationError,
)
from weekly_ledger.models.ledger import (
    AutoCloseConfig,
    CurrentWeek,
    Transaction,
    WeekSummary,
    generate_week_id,
)
from weekly_ledger.periods import (
    DAYS_PER_WEEK,
    InvalidDateError,
    day_of_week,
    format_period,
    is_date_within_range,
    is_day_of_week,
    next_occurrence_strictly_after,
    parse_date,
    week_start,
)
from weekly_ledger.services.storage import KeyValueStoreInterface
from weekly_ledger.validation import LedgerValidator


class StorageKeys:
    """Names of every key the ledger reads or writes."""

    def __init__(self, prefix: str = "finance"):
        self.transactions = f"{prefix}_transactions"
        self.closed_weeks = f"{prefix}_closed_weeks"
        self.auto_close_config = f"{prefix}_auto_close_config"
        self.weekly_limit = f"{prefix}_weekly_limit"
        self.next_close_date = f"{prefix}_next_close_date"
        self.last_close_date = f"{prefix}_last_close_date"
        self.manually_opened_week_id = f"{prefix}_manually_opened_week_id"
        self.current_week_start = f"{prefix}_current_week_start"
        self.week_id_mapping = f"{prefix}_week_id_mapping"
        self.current_week_id = f"{prefix}_current_week_id"


def _find_week_id(mapping: dict[str, str], start: date) -> Optional[str]:
    """First week id registered for a start date."""
    key = start.isoformat()
    for week_id, value in mapping.items():
        if value == key:
            return week_id
    return None


def _mapped_start(mapping: dict[str, str], week_id: str) -> Optional[date]:
    value = mapping.get(week_id)
    if not value:
        return None
    try:
        return parse_date(value)
    except InvalidDateError:
        return None


def _is_effectively_closed(
    transaction: Transaction,
    closed: set[str],
    mapping: dict[str, str],
) -> bool:
    """
    Does a transaction belong to a closed week?

    Its own week decides when that week is known. Entries whose week id has
    no mapping (older data) fall back to the standard week of their date.
    """
    if transaction.week_id in closed:
        return True
    if transaction.week_id in mapping:
        return False
    standard_id = _find_week_id(mapping, week_start(transaction.date))
    return standard_id is not None and standard_id in closed


class WeekLedger:
    """
    Expense ledger organised in closable weeks.

    Args:
        storage: Key-value store holding all ledger state
        audit_logger: Optional audit trail for every mutation
        clock: Returns the current local datetime; injectable for tests
        settings: Ledger settings; read from the environment when omitted
    """

    def __init__(
        self,
        storage: KeyValueStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
        settings: Optional[LedgerSettings] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._clock = clock or datetime.now
        self._settings = settings or get_settings().ledger
        self._validator = validator or LedgerValidator()
        self._keys = StorageKeys(self._settings.key_prefix)
        self._write_lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    @property
    def keys(self) -> StorageKeys:
        return self._keys

    def _now(self) -> datetime:
        return self._clock()

    def _today(self) -> date:
        return self._clock().date()

    # =========================================================================
    # WEEK IDENTIFIERS
    # =========================================================================

    async def get_week_id_mapping(self) -> dict[str, str]:
        """weekId -> ISO start date. Append-only."""
        return await self._storage.get(self._keys.week_id_mapping, {}) or {}

    async def _register_week(self, week_id: str, start: date) -> None:
        mapping = await self.get_week_id_mapping()
        existing = mapping.get(week_id)
        if existing is not None:
            if existing != start.isoformat():
                raise ValueError(
                    f"Week {week_id} already starts on {existing}"
                )
            return
        mapping[week_id] = start.isoformat()
        await self._storage.set(self._keys.week_id_mapping, mapping)

    async def get_or_create_week_id(self, start: Any) -> str:
        """Week id registered for a start date, creating one if needed."""
        start = parse_date(start)
        mapping = await self.get_week_id_mapping()
        week_id = _find_week_id(mapping, start)
        if week_id is None:
            week_id = generate_week_id()
            await self._register_week(week_id, start)
        return week_id

    async def get_week_start_date_by_id(self, week_id: str) -> Optional[date]:
        return _mapped_start(await self.get_week_id_mapping(), week_id)

    async def get_closed_weeks(self) -> list[str]:
        return await self._storage.get(self._keys.closed_weeks, []) or []

    async def is_week_closed(self, week_id: str) -> bool:
        return week_id in await self.get_closed_weeks()

    # =========================================================================
    # CURRENT WEEK
    # =========================================================================

    async def get_current_week_start(self) -> Optional[date]:
        """Explicitly stored start of the current week, if any."""
        value = await self._storage.get(self._keys.current_week_start, None)
        return parse_date(value) if value else None

    async def set_current_week_start(
        self,
        start: Any,
        week_id: Optional[str] = None,
    ) -> str:
        """
        Point the current week at a start date.

        The start is written before the id, so a reader in between sees a
        start whose registered id is the new one and converges on it.
        """
        start = parse_date(start)
        if week_id is None:
            week_id = await self.get_or_create_week_id(start)
        else:
            await self._register_week(week_id, start)
        await self._storage.set(self._keys.current_week_start, start.isoformat())
        await self._storage.set(self._keys.current_week_id, week_id)
        return week_id

    async def get_current_week_start_date(self) -> date:
        """
        Start of the current week, stored or derived.

        Without a stored start, the week runs up to the next close date when
        that is at most a week away, otherwise it is the standard week of today.
        """
        stored = await self.get_current_week_start()
        if stored is not None:
            return stored

        today = self._today()
        next_close = await self.get_next_close_date()
        if next_close is not None:
            candidate = next_close - timedelta(days=DAYS_PER_WEEK)
            if candidate <= today:
                return candidate
        return week_start(today)

    async def get_current_week_end_date(self) -> date:
        start = await self.get_current_week_start_date()
        next_close = await self.get_next_close_date()
        if next_close is not None and next_close >= start:
            return next_close
        return start + timedelta(days=DAYS_PER_WEEK - 1)

    async def get_current_week_id(self) -> str:
        """
        Id of the week accepting new expenses.

        A stored id is trusted while its registered start matches the current
        start; otherwise an open week for that start is found or created and
        stored together with the start.
        """
        start = await self.get_current_week_start_date()
        mapping = await self.get_week_id_mapping()
        stored_id = await self._storage.get(self._keys.current_week_id, None)
        if stored_id and _mapped_start(mapping, stored_id) == start:
            return stored_id

        closed = set(await self.get_closed_weeks())
        week_id = next(
            (
                wid for wid, value in mapping.items()
                if value == start.isoformat() and wid not in closed
            ),
            None,
        )
        if week_id is None:
            week_id = generate_week_id()
        # Pinning the start keeps a derived week current until it is closed
        await self.set_current_week_start(start, week_id)
        self._logger.debug(
            "current_week_rederived",
            week_id=week_id,
            start=start.isoformat(),
            previous=stored_id,
        )
        return week_id

    async def get_current_week(self) -> CurrentWeek:
        week_id = await self.get_current_week_id()
        return CurrentWeek(
            week_id=week_id,
            start_date=await self.get_current_week_start_date(),
            end_date=await self.get_current_week_end_date(),
            is_closed=await self.is_week_closed(week_id),
        )

    async def is_current_week_closed(self) -> bool:
        return (await self.get_current_week()).is_closed

    async def get_current_week_period(self) -> str:
        """Readable period of the current week."""
        current = await self.get_current_week()
        return format_period(current.start_date, current.end_date)

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def get_all_transactions(self) -> list[Transaction]:
        raw = await self._storage.get(self._keys.transactions, []) or []
        return [Transaction.from_storage(item) for item in raw]

    async def create_transaction(
        self,
        description: Any,
        amount: Any,
        date_string: Any,
    ) -> Transaction:
        """
        Record an expense and attribute it to a week.

        Raises:
            ValidationError: Empty description, non-positive amount or bad date
            ClosedWeekError: The current week is closed
        """
        try:
            description, amount, entry_date = self._validator.validate_transaction(
                description, amount, date_string
            )
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_transaction_rejected(
                    reason=str(e), field=e.field
                )
            raise

        async with self._write_lock:
            current = await self.get_current_week()
            if current.is_closed:
                if self._audit_logger:
                    await self._audit_logger.log_transaction_rejected(
                        reason="current week is closed",
                        week_id=current.week_id,
                    )
                raise ClosedWeekError(current.week_id)

            week_id, rule = await self._attribute(entry_date, current)
            transaction = Transaction(
                description=description,
                amount=amount,
                date=entry_date,
                week_id=week_id,
                created_at=self._now(),
            )

            raw = await self._storage.get(self._keys.transactions, []) or []
            raw.append(transaction.to_storage())
            await self._storage.set(self._keys.transactions, raw)

        self._logger.debug(
            "transaction_attributed",
            transaction_id=transaction.id,
            week_id=week_id,
            rule=rule,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                transaction_id=transaction.id,
                week_id=week_id,
                amount=str(amount),
                rule=rule,
            )
        return transaction

    async def _attribute(
        self,
        entry_date: date,
        current: CurrentWeek,
    ) -> tuple[str, str]:
        """Week id for an entry date plus the name of the rule that chose it."""
        if entry_date >= self._today():
            return current.week_id, "today_or_future"

        if is_date_within_range(entry_date, current.start_date, current.end_date):
            return current.week_id, "current_period"

        standard_start = week_start(entry_date)
        mapping = await self.get_week_id_mapping()
        standard_id = _find_week_id(mapping, standard_start)
        if standard_id is not None and await self.is_week_closed(standard_id):
            return current.week_id, "closed_week_redirect"

        if standard_id is None:
            standard_id = await self.get_or_create_week_id(standard_start)
        return standard_id, "standard_week"

    async def remove_transaction(self, transaction_id: str) -> bool:
        """Delete an expense by id. Returns True if one was removed."""
        async with self._write_lock:
            raw = await self._storage.get(self._keys.transactions, []) or []
            remaining = [item for item in raw if item.get("id") != transaction_id]
            if len(remaining) == len(raw):
                return False
            await self._storage.set(self._keys.transactions, remaining)

        if self._audit_logger:
            await self._audit_logger.log_transaction_removed(transaction_id)
        return True

    async def is_effectively_closed(self, transaction: Transaction) -> bool:
        closed = set(await self.get_closed_weeks())
        mapping = await self.get_week_id_mapping()
        return _is_effectively_closed(transaction, closed, mapping)

    def _in_current_week(
        self,
        transaction: Transaction,
        current: CurrentWeek,
        closed: set[str],
        mapping: dict[str, str],
    ) -> bool:
        if _is_effectively_closed(transaction, closed, mapping):
            return False
        if transaction.week_id == current.week_id:
            return True
        # Entries recorded before the current week existed, dated inside it
        return is_date_within_range(
            transaction.date, current.start_date, current.end_date
        )

    async def get_transactions_by_week(self, week_id: str) -> list[Transaction]:
        """
        Expenses of one week.

        The current week also picks up open entries dated inside its period;
        any other week matches on week id alone.
        """
        transactions = await self.get_all_transactions()
        current = await self.get_current_week()
        if week_id != current.week_id:
            return [t for t in transactions if t.week_id == week_id]

        closed = set(await self.get_closed_weeks())
        mapping = await self.get_week_id_mapping()
        return [
            t for t in transactions
            if self._in_current_week(t, current, closed, mapping)
        ]

    async def get_current_week_transactions(self) -> list[Transaction]:
        """Expenses of the current week; empty once it is closed."""
        if await self.is_current_week_closed():
            return []
        return await self.get_transactions_by_week(
            await self.get_current_week_id()
        )

    @staticmethod
    def calculate_total(transactions: list[Transaction]) -> Decimal:
        return sum((t.amount for t in transactions), Decimal("0"))

    async def get_current_week_total(self) -> Decimal:
        return self.calculate_total(await self.get_current_week_transactions())

    async def get_current_month_total(self) -> Decimal:
        today = self._today()
        return self.calculate_total([
            t for t in await self.get_all_transactions()
            if t.date.year == today.year and t.date.month == today.month
        ])

    async def is_date_in_closed_week(self, value: Any) -> bool:
        mapping = await self.get_week_id_mapping()
        week_id = _find_week_id(mapping, week_start(value))
        return week_id is not None and await self.is_week_closed(week_id)

    # =========================================================================
    # SCHEDULE
    # =========================================================================

    async def get_auto_close_config(self) -> AutoCloseConfig:
        raw = await self._storage.get(self._keys.auto_close_config, None)
        if raw is None:
            return AutoCloseConfig(
                enabled=self._settings.default_auto_close_enabled,
                day_of_week=self._settings.default_auto_close_day,
                hour=self._settings.default_auto_close_hour,
            )
        return AutoCloseConfig.from_storage(raw)

    async def set_auto_close_config(self, config: Any) -> AutoCloseConfig:
        """
        Save the automatic close schedule.

        A pending next close date on a different weekday is moved to the
        next occurrence of the new weekday.
        """
        config = self._validator.validate_auto_close_config(config)
        async with self._write_lock:
            await self._storage.set(
                self._keys.auto_close_config, config.to_storage()
            )
            next_close = await self.get_next_close_date()
            if next_close is not None and not is_day_of_week(
                next_close, config.day_of_week
            ):
                await self._write_next_close_date(
                    next_occurrence_strictly_after(self._today(), config.day_of_week),
                    config,
                )

        if self._audit_logger:
            await self._audit_logger.log_auto_close_config_updated(
                config.to_storage()
            )
        return config

    async def get_next_close_date(self) -> Optional[date]:
        value = await self._storage.get(self._keys.next_close_date, None)
        return parse_date(value) if value else None

    async def set_next_close_date(self, value: Any) -> date:
        """
        Schedule the next close.

        Raises:
            ValidationError: Not on the configured weekday, or not after today
        """
        config = await self.get_auto_close_config()
        close_date = self._validator.validate_next_close_date(
            value, config.day_of_week, self._today()
        )
        async with self._write_lock:
            await self._write_next_close_date(close_date, config)
        return close_date

    async def _write_next_close_date(
        self,
        close_date: date,
        config: AutoCloseConfig,
    ) -> None:
        await self._storage.set(self._keys.next_close_date, close_date.isoformat())
        if self._audit_logger:
            await self._audit_logger.log_next_close_date_set(
                next_close_date=close_date.isoformat(),
                day_of_week=config.day_of_week,
            )

    async def get_last_close_date(self) -> Optional[date]:
        """Day the current week was last closed."""
        value = await self._storage.get(self._keys.last_close_date, None)
        return parse_date(value) if value else None

    # =========================================================================
    # CLOSING
    # =========================================================================

    async def close_week(
        self,
        week_id: Optional[str] = None,
        next_close_date: Any = None,
        is_manual: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Close a week and, when it is the current one, open the next.

        Manual closes always target the current week and fail loudly if it
        is already closed. Automatic closes return False instead, so the
        scheduler can retry every tick without harm.

        Raises:
            AlreadyClosedError: Manual close of an already closed week
            PersistenceInconsistencyError: A close did not durably take effect
            ValidationError: An explicit next close date is not acceptable
        """
        async with self._write_lock:
            return await self._close_week(
                week_id, next_close_date, is_manual, correlation_id
            )

    async def _close_week(
        self,
        week_id: Optional[str],
        next_close_date: Any,
        is_manual: bool,
        correlation_id: Optional[UUID],
    ) -> bool:
        today = self._today()
        current = await self.get_current_week()

        if is_manual and week_id is None:
            target = current.week_id
            if current.is_closed or await self._reopened_today(current, today):
                await self._reject_close(target, "already closed")
                raise AlreadyClosedError(target)
        else:
            target = week_id or current.week_id
            if await self.is_week_closed(target):
                return False

        config = await self.get_auto_close_config()
        if next_close_date is not None:
            next_close_date = self._validator.validate_next_close_date(
                next_close_date, config.day_of_week, today
            )

        # Fresh read right before the write
        closed = await self.get_closed_weeks()
        if target in closed:
            if is_manual:
                await self._reject_close(target, "already closed")
                raise AlreadyClosedError(target)
            return False

        closed.append(target)
        await self._storage.set(self._keys.closed_weeks, closed)
        if target not in await self.get_closed_weeks():
            await self._inconsistent(
                self._keys.closed_weeks,
                f"Closing week {target} was not saved. Please try again.",
            )

        new_week_id = None
        if target == current.week_id:
            new_week_id = await self._open_week(today)
            await self._storage.set(self._keys.last_close_date, today.isoformat())
            if is_manual:
                await self._storage.set(
                    self._keys.manually_opened_week_id, new_week_id
                )
        scheduled = await self._schedule_next_close(today, config, next_close_date)

        if self._audit_logger:
            await self._audit_logger.log_week_closed(
                week_id=target,
                new_week_id=new_week_id,
                next_close_date=scheduled.isoformat(),
                is_manual=is_manual,
                correlation_id=correlation_id,
            )
        return True

    async def _reopened_today(self, current: CurrentWeek, today: date) -> bool:
        """Was the current week itself opened by a manual close earlier today?"""
        opened_by_hand = await self._storage.get(
            self._keys.manually_opened_week_id, None
        )
        return current.start_date == today and current.week_id == opened_by_hand

    async def _open_week(self, start: date) -> str:
        """Start a fresh current week and check it landed open."""
        week_id = await self.set_current_week_start(start, generate_week_id())

        if await self.is_week_closed(await self.get_current_week_id()):
            week_id = await self.set_current_week_start(start, generate_week_id())

        if await self.get_current_week_id() != week_id:
            await self._inconsistent(
                self._keys.current_week_id,
                f"Current week pointer did not move to {week_id}.",
            )
        return week_id

    async def _schedule_next_close(
        self,
        today: date,
        config: AutoCloseConfig,
        requested: Optional[date],
    ) -> date:
        """
        Persist the next close date.

        An existing future date on the right weekday that comes no later
        than the next regular occurrence is kept as is.
        """
        if requested is None:
            candidate = next_occurrence_strictly_after(today, config.day_of_week)
            existing = await self.get_next_close_date()
            if (
                existing is not None
                and today < existing <= candidate
                and is_day_of_week(existing, config.day_of_week)
            ):
                return existing
            requested = candidate
        await self._write_next_close_date(requested, config)
        return requested

    async def check_and_auto_close_week(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Close the current week if the schedule says so.

        Fires only on the configured weekday, from the configured hour on,
        while no later close is already scheduled and the current week is
        open. Returns True if a close happened.
        """
        config = await self.get_auto_close_config()
        if not config.enabled:
            return False

        now = self._now()
        if day_of_week(now) != config.day_of_week or now.hour < config.hour:
            return False

        async with self._write_lock:
            next_close = await self.get_next_close_date()
            if next_close is not None and next_close > now.date():
                return False
            current = await self.get_current_week()
            if current.is_closed:
                return False
            return await self._close_week(
                current.week_id, None, False, correlation_id
            )

    async def _reject_close(self, week_id: str, reason: str) -> None:
        if self._audit_logger:
            await self._audit_logger.log_week_close_rejected(week_id, reason)

    async def _inconsistent(self, key: str, message: str) -> None:
        if self._audit_logger:
            await self._audit_logger.log_persistence_inconsistency(key, message)
        raise PersistenceInconsistencyError(key, message)

    # =========================================================================
    # HISTORY
    # =========================================================================

    async def get_weeks_history(self, limit: Optional[int] = None) -> list[WeekSummary]:
        """
        Every week that was closed or holds expenses, newest first.

        Weeks without a registered start fall back to the standard week of
        their earliest expense; weeks with neither are dropped.
        Past weeks end the day before the next registered week starts, or
        after seven days, whichever comes first.
        """
        if limit is None:
            limit = self._settings.history_limit

        # Resolving the current week may register it, so read the rest after
        current = await self.get_current_week()
        closed_list = await self.get_closed_weeks()
        closed = set(closed_list)
        transactions = await self.get_all_transactions()
        mapping = await self.get_week_id_mapping()
        known_starts = sorted({
            start for start in (_mapped_start(mapping, wid) for wid in mapping)
            if start is not None
        })

        week_ids = list(dict.fromkeys(
            closed_list + [t.week_id for t in transactions]
        ))

        summaries = []
        for week_id in week_ids:
            if week_id == current.week_id:
                week_transactions = [
                    t for t in transactions
                    if self._in_current_week(t, current, closed, mapping)
                ]
            else:
                week_transactions = [t for t in transactions if t.week_id == week_id]

            start = _mapped_start(mapping, week_id)
            if start is None and week_transactions:
                start = week_start(min(t.date for t in week_transactions))
            if start is None:
                continue

            if week_id == current.week_id:
                end = current.end_date
            else:
                end = start + timedelta(days=DAYS_PER_WEEK - 1)
                # A later week that started early cuts this one short
                following = next((s for s in known_starts if s > start), None)
                if following is not None and following <= end:
                    end = following - timedelta(days=1)

            summaries.append(WeekSummary(
                week_id=week_id,
                start_date=start,
                end_date=end,
                period=format_period(start, end),
                total=self.calculate_total(week_transactions),
                transaction_count=len(week_transactions),
                is_closed=week_id in closed,
            ))

        # Newest first; an open week sorts ahead of a closed one on the same day
        summaries.sort(key=lambda s: (s.start_date, not s.is_closed), reverse=True)
        return summaries[:max(limit, 0)]

    # =========================================================================
    # WEEKLY LIMIT
    # =========================================================================

    async def get_weekly_limit(self) -> Optional[Decimal]:
        value = await self._storage.get(self._keys.weekly_limit, None)
        return Decimal(str(value)) if value is not None else None

    async def set_weekly_limit(self, limit: Any) -> Optional[Decimal]:
        """
        Set the weekly spending limit; None removes it.

        Raises:
            ValidationError: Non-numeric or non-positive limit
        """
        value = self._validator.validate_weekly_limit(limit)
        async with self._write_lock:
            await self._storage.set(
                self._keys.weekly_limit,
                str(value) if value is not None else None,
            )
        if self._audit_logger:
            await self._audit_logger.log_weekly_limit_updated(
                str(value) if value is not None else None
            )
        return value

    async def is_weekly_limit_exceeded(self) -> bool:
        limit = await self.get_weekly_limit()
        if limit is None:
            return False
        return await self.get_current_week_total() > limit

    async def get_weekly_limit_usage(self) -> Optional[Decimal]:
        """Percentage of the limit used this week, capped at 100."""
        limit = await self.get_weekly_limit()
        if limit is None:
            return None
        usage = await self.get_current_week_total() / limit * 100
        return min(usage, Decimal("100"))

    weekly_limit_usage = get_weekly_limit_usage

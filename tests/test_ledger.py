"""
Tests for the Week Ledger

The default clock is Wednesday 2024-06-05 10:00, inside the standard week
Sunday 2024-06-02 .. Saturday 2024-06-08. The default schedule closes on
Sundays from noon.
"""

import asyncio
import pytest
from datetime import date, datetime
from decimal import Decimal

from weekly_ledger.exceptions import (
    AlreadyClosedError,
    ClosedWeekError,
    PersistenceInconsistencyError,
    ValidationError,
)
from weekly_ledger.ledger import WeekLedger
from weekly_ledger.models.audit import AuditEventType
from weekly_ledger.models.ledger import Transaction
from weekly_ledger.services.storage import InMemoryKeyValueStore, JsonFileKeyValueStore

from conftest import FakeClock, ledger_settings, run_async


def add(ledger, description, amount, entry_date):
    return run_async(ledger.create_transaction(description, amount, entry_date))


class DroppingStore(InMemoryKeyValueStore):
    """Store that acknowledges writes to one key without keeping them."""

    def __init__(self, dropped_key: str):
        super().__init__()
        self._dropped_key = dropped_key

    async def set(self, key, value):
        if key == self._dropped_key:
            return True
        return await super().set(key, value)


class TestCurrentWeek:
    """Tests for current week derivation."""

    def test_first_use_starts_standard_week(self, ledger):
        """Without stored state the current week is the standard week of today."""
        current = run_async(ledger.get_current_week())
        assert current.start_date == date(2024, 6, 2)
        assert current.end_date == date(2024, 6, 8)
        assert current.is_closed is False

    def test_derived_week_is_pinned(self, ledger, clock):
        """Once derived, the week stays current after the calendar rolls over."""
        week_id = run_async(ledger.get_current_week_id())
        clock.set(datetime(2024, 6, 10, 9, 0))
        assert run_async(ledger.get_current_week_id()) == week_id
        assert run_async(ledger.get_current_week_start_date()) == date(2024, 6, 2)

    def test_week_id_is_stable(self, ledger):
        first = run_async(ledger.get_current_week_id())
        assert run_async(ledger.get_current_week_id()) == first
        assert run_async(ledger.get_week_start_date_by_id(first)) == date(2024, 6, 2)

    def test_end_follows_next_close_date(self, ledger):
        run_async(ledger.set_next_close_date("2024-06-09"))
        assert run_async(ledger.get_current_week_end_date()) == date(2024, 6, 9)
        assert run_async(ledger.get_current_week_period()) == "02/06/2024 - 09/06/2024"

    def test_stale_pointer_is_rederived(self, ledger, store):
        """A stored id whose start does not match is replaced."""
        run_async(ledger.set_current_week_start("2024-06-02"))
        run_async(store.set("finance_current_week_id", "week_unknown"))
        week_id = run_async(ledger.get_current_week_id())
        assert week_id != "week_unknown"
        assert run_async(ledger.get_week_start_date_by_id(week_id)) == date(2024, 6, 2)

    def test_get_or_create_week_id_reuses_ids(self, ledger):
        first = run_async(ledger.get_or_create_week_id("2024-05-26"))
        assert run_async(ledger.get_or_create_week_id(date(2024, 5, 26))) == first
        mapping = run_async(ledger.get_week_id_mapping())
        assert mapping[first] == "2024-05-26"


class TestAttribution:
    """Tests for assigning new expenses to weeks."""

    def test_sunday_entry_joins_week_starting_that_day(self, store, audit_logger):
        clock = FakeClock(datetime(2024, 6, 2, 12, 0))
        ledger = WeekLedger(store, audit_logger, clock, ledger_settings())
        txn = add(ledger, "Bread", "3", "2024-06-02")
        current = run_async(ledger.get_current_week())
        assert current.start_date == date(2024, 6, 2)
        assert txn.week_id == current.week_id

    def test_today_goes_to_current_week(self, ledger):
        txn = add(ledger, "Coffee", "3.50", "2024-06-05")
        assert txn.week_id == run_async(ledger.get_current_week_id())
        assert txn.amount == Decimal("3.50")

    def test_future_date_goes_to_current_week(self, ledger):
        txn = add(ledger, "Concert", "60", "2024-07-01")
        assert txn.week_id == run_async(ledger.get_current_week_id())

    def test_earlier_date_in_current_period(self, ledger):
        txn = add(ledger, "Lunch", "12", "2024-06-03")
        assert txn.week_id == run_async(ledger.get_current_week_id())

    def test_past_date_goes_to_its_standard_week(self, ledger):
        txn = add(ledger, "Books", "20", "2024-05-28")
        assert txn.week_id != run_async(ledger.get_current_week_id())
        assert run_async(ledger.get_week_start_date_by_id(txn.week_id)) == date(2024, 5, 26)

    def test_past_entries_share_their_standard_week(self, ledger):
        first = add(ledger, "Books", "20", "2024-05-28")
        second = add(ledger, "Pens", "2", "2024-05-31")
        assert first.week_id == second.week_id

    def test_closed_standard_week_redirects_to_current(self, ledger):
        past = add(ledger, "Books", "20", "2024-05-28")
        assert run_async(ledger.close_week(week_id=past.week_id)) is True
        assert run_async(ledger.is_date_in_closed_week("2024-05-30")) is True

        late = add(ledger, "Forgotten receipt", "8", "2024-05-29")
        current_id = run_async(ledger.get_current_week_id())
        assert late.week_id == current_id
        assert late in run_async(ledger.get_current_week_transactions())

    def test_entry_after_close_redirects_from_closed_week(self, ledger):
        """An entry dated in the week just closed lands in the new week."""
        run_async(ledger.close_week(is_manual=True))
        txn = add(ledger, "Taxi", "15", "2024-06-03")
        current = run_async(ledger.get_current_week())
        assert current.start_date == date(2024, 6, 5)
        assert txn.week_id == current.week_id

    def test_utc_timestamp_is_stored_on_local_day(self, ledger, local_timezone):
        local_timezone("Europe/Berlin")
        txn = add(ledger, "Late dinner", "10", "2024-06-04T22:00:00.000Z")
        assert txn.date == date(2024, 6, 5)
        assert txn.week_id == run_async(ledger.get_current_week_id())

    def test_long_description_is_accepted(self, ledger):
        txn = add(ledger, "a" * 501, "10", "2024-06-05")
        assert len(txn.description) == 501
        assert run_async(ledger.get_all_transactions())[0].description == "a" * 501

    def test_closed_current_week_rejects_entries(self, ledger, store, audit_storage):
        week_id = run_async(ledger.get_current_week_id())
        run_async(store.set("finance_closed_weeks", [week_id]))

        with pytest.raises(ClosedWeekError) as exc_info:
            add(ledger, "Snack", "2", "2024-06-05")
        assert exc_info.value.week_id == week_id
        assert run_async(ledger.get_all_transactions()) == []

        events = run_async(audit_storage.get_recent_events())
        assert events[0].event_type == AuditEventType.TRANSACTION_REJECTED

    def test_invalid_input_writes_nothing(self, ledger, store):
        with pytest.raises(ValidationError):
            add(ledger, "", "5", "2024-06-05")
        with pytest.raises(ValidationError):
            add(ledger, "Snack", "-5", "2024-06-05")
        with pytest.raises(ValidationError):
            add(ledger, "Snack", "5", "")
        assert run_async(store.get("finance_transactions")) is None

    def test_stored_shape(self, ledger, store):
        txn = add(ledger, "Coffee", "3.50", "2024-06-05")
        raw = run_async(store.get("finance_transactions"))
        assert raw == [{
            "id": txn.id,
            "description": "Coffee",
            "amount": "3.50",
            "date": "2024-06-05",
            "weekId": txn.week_id,
            "createdAt": "2024-06-05T10:00:00",
        }]

    def test_creation_is_audited_with_rule(self, ledger, audit_storage):
        txn = add(ledger, "Books", "20", "2024-05-28")
        events = run_async(audit_storage.get_events_by_entity("transaction", txn.id))
        assert events[0].event_type == AuditEventType.TRANSACTION_CREATED
        assert events[0].details["attribution_rule"] == "standard_week"

    def test_concurrent_entries_are_all_kept(self, ledger):
        async def add_many():
            await asyncio.gather(*[
                ledger.create_transaction(f"Item {i}", "1", "2024-06-05")
                for i in range(5)
            ])

        run_async(add_many())
        assert len(run_async(ledger.get_all_transactions())) == 5


class TestBoundaries:
    """Tests for the edges of the current period."""

    @pytest.fixture
    def stale_ledger(self, store, audit_logger):
        """Current week 2024-06-02 .. 2024-06-08 while today is 2024-06-12."""
        clock = FakeClock(datetime(2024, 6, 12, 10, 0))
        ledger = WeekLedger(store, audit_logger, clock, ledger_settings())
        run_async(ledger.set_current_week_start("2024-06-02"))
        return ledger

    def test_end_date_late_evening_is_included(self, stale_ledger):
        txn = add(stale_ledger, "Dinner", "30", "2024-06-08T23:59:59")
        assert txn.week_id == run_async(stale_ledger.get_current_week_id())
        assert txn in run_async(stale_ledger.get_current_week_transactions())

    def test_day_after_end_is_excluded(self, stale_ledger):
        txn = add(stale_ledger, "Breakfast", "9", "2024-06-09")
        assert txn.week_id != run_async(stale_ledger.get_current_week_id())
        assert run_async(stale_ledger.get_current_week_transactions()) == []


class TestClosing:
    """Tests for manual and scheduled closing."""

    def test_manual_close_opens_new_week(self, ledger):
        old_id = run_async(ledger.get_current_week_id())
        add(ledger, "Lunch", "12", "2024-06-04")
        add(ledger, "Coffee", "3", "2024-06-05")

        assert run_async(ledger.close_week(is_manual=True)) is True

        assert old_id in run_async(ledger.get_closed_weeks())
        current = run_async(ledger.get_current_week())
        assert current.week_id != old_id
        assert current.start_date == date(2024, 6, 5)
        assert current.is_closed is False
        assert run_async(ledger.get_next_close_date()) == date(2024, 6, 9)
        assert run_async(ledger.get_last_close_date()) == date(2024, 6, 5)

    def test_closed_week_drops_out_of_current_view(self, ledger):
        add(ledger, "Coffee", "3", "2024-06-05")
        run_async(ledger.close_week(is_manual=True))
        assert run_async(ledger.get_current_week_transactions()) == []
        assert run_async(ledger.get_current_week_total()) == Decimal("0")

    def test_second_manual_close_same_day_fails(self, ledger):
        run_async(ledger.close_week(is_manual=True))
        with pytest.raises(AlreadyClosedError):
            run_async(ledger.close_week(is_manual=True))
        assert len(run_async(ledger.get_closed_weeks())) == 1

    def test_manual_close_after_auto_close_same_day(self, ledger, clock):
        """A week opened by the schedule can still be closed by hand."""
        run_async(ledger.get_current_week_id())
        clock.set(datetime(2024, 6, 9, 12, 5))
        assert run_async(ledger.check_and_auto_close_week()) is True

        clock.set(datetime(2024, 6, 9, 13, 0))
        assert run_async(ledger.is_current_week_closed()) is False
        add(ledger, "Tea", "4", "2024-06-09")
        assert run_async(ledger.close_week(is_manual=True)) is True
        assert len(run_async(ledger.get_closed_weeks())) == 2

        clock.set(datetime(2024, 6, 9, 14, 0))
        with pytest.raises(AlreadyClosedError):
            run_async(ledger.close_week(is_manual=True))

    def test_manual_close_next_day_is_allowed(self, ledger, clock):
        run_async(ledger.close_week(is_manual=True))
        clock.advance(days=1)
        assert run_async(ledger.close_week(is_manual=True)) is True
        assert len(run_async(ledger.get_closed_weeks())) == 2

    def test_manual_close_of_closed_current_week(self, ledger, store, audit_storage):
        week_id = run_async(ledger.get_current_week_id())
        run_async(store.set("finance_closed_weeks", [week_id]))

        with pytest.raises(AlreadyClosedError):
            run_async(ledger.close_week(is_manual=True))
        events = run_async(audit_storage.get_recent_events())
        assert events[0].event_type == AuditEventType.WEEK_CLOSE_REJECTED

    def test_automatic_close_of_closed_week_is_noop(self, ledger, store):
        week_id = run_async(ledger.get_current_week_id())
        run_async(store.set("finance_closed_weeks", [week_id]))
        assert run_async(ledger.close_week(week_id=week_id)) is False
        assert run_async(ledger.get_closed_weeks()) == [week_id]

    def test_closing_other_week_keeps_pointer(self, ledger):
        current_id = run_async(ledger.get_current_week_id())
        past = add(ledger, "Books", "20", "2024-05-28")
        assert run_async(ledger.close_week(week_id=past.week_id)) is True
        assert run_async(ledger.get_current_week_id()) == current_id
        assert run_async(ledger.is_week_closed(past.week_id)) is True

    def test_explicit_next_close_date(self, ledger):
        run_async(ledger.close_week(next_close_date="2024-06-16", is_manual=True))
        assert run_async(ledger.get_next_close_date()) == date(2024, 6, 16)

    def test_invalid_next_close_date_closes_nothing(self, ledger):
        with pytest.raises(ValidationError):
            run_async(ledger.close_week(next_close_date="2024-06-10", is_manual=True))
        assert run_async(ledger.get_closed_weeks()) == []

    def test_lost_close_write_is_reported(self, audit_storage, audit_logger, clock):
        store = DroppingStore("finance_closed_weeks")
        ledger = WeekLedger(store, audit_logger, clock, ledger_settings())
        week_id = run_async(ledger.get_current_week_id())

        with pytest.raises(PersistenceInconsistencyError) as exc_info:
            run_async(ledger.close_week(is_manual=True))
        assert exc_info.value.key == "finance_closed_weeks"
        # The pointer did not move
        assert run_async(ledger.get_current_week_id()) == week_id

        events = run_async(audit_storage.get_recent_events())
        assert events[0].event_type == AuditEventType.PERSISTENCE_INCONSISTENCY

    def test_close_is_audited(self, ledger, audit_storage):
        week_id = run_async(ledger.get_current_week_id())
        run_async(ledger.close_week(is_manual=True))
        events = run_async(audit_storage.get_events_by_entity("week", week_id))
        closed = [e for e in events if e.event_type == AuditEventType.WEEK_CLOSED]
        assert closed[0].details["is_manual"] is True
        assert closed[0].details["new_week_id"] == run_async(ledger.get_current_week_id())


class TestAutoClose:
    """Tests for check_and_auto_close_week."""

    def test_closes_on_schedule(self, ledger, clock):
        week_id = run_async(ledger.get_current_week_id())
        add(ledger, "Coffee", "3", "2024-06-05")

        clock.set(datetime(2024, 6, 9, 12, 0))
        assert run_async(ledger.check_and_auto_close_week()) is True

        assert run_async(ledger.is_week_closed(week_id)) is True
        assert run_async(ledger.get_current_week_start_date()) == date(2024, 6, 9)
        assert run_async(ledger.get_next_close_date()) == date(2024, 6, 16)

    def test_second_check_same_hour_is_noop(self, ledger, clock):
        run_async(ledger.get_current_week_id())
        clock.set(datetime(2024, 6, 9, 12, 0))
        assert run_async(ledger.check_and_auto_close_week()) is True
        clock.set(datetime(2024, 6, 9, 12, 30))
        assert run_async(ledger.check_and_auto_close_week()) is False
        assert len(run_async(ledger.get_closed_weeks())) == 1

    def test_not_before_hour(self, ledger, clock):
        run_async(ledger.get_current_week_id())
        clock.set(datetime(2024, 6, 9, 11, 59))
        assert run_async(ledger.check_and_auto_close_week()) is False

    def test_later_in_the_day_still_closes(self, ledger, clock):
        run_async(ledger.get_current_week_id())
        clock.set(datetime(2024, 6, 9, 20, 0))
        assert run_async(ledger.check_and_auto_close_week()) is True

    def test_not_on_other_days(self, ledger, clock):
        clock.set(datetime(2024, 6, 8, 12, 0))
        assert run_async(ledger.check_and_auto_close_week()) is False

    def test_disabled(self, ledger, clock):
        run_async(ledger.set_auto_close_config({"enabled": False, "dayOfWeek": 0, "hour": 12}))
        clock.set(datetime(2024, 6, 9, 12, 0))
        assert run_async(ledger.check_and_auto_close_week()) is False

    def test_sunday_morning_entries_close_with_the_week(self, ledger, clock):
        week_id = run_async(ledger.get_current_week_id())
        clock.set(datetime(2024, 6, 9, 9, 0))
        txn = add(ledger, "Brunch", "25", "2024-06-09")
        assert txn.week_id == week_id

        clock.set(datetime(2024, 6, 9, 12, 0))
        run_async(ledger.check_and_auto_close_week())
        assert run_async(ledger.get_current_week_transactions()) == []

        clock.set(datetime(2024, 6, 9, 13, 0))
        later = add(ledger, "Tea", "4", "2024-06-09")
        assert later.week_id == run_async(ledger.get_current_week_id())
        assert run_async(ledger.get_current_week_total()) == Decimal("4")


class TestSchedule:
    """Tests for next close date and schedule settings."""

    def test_next_close_date_must_match_weekday(self, ledger):
        with pytest.raises(ValidationError):
            run_async(ledger.set_next_close_date("2024-06-10"))

    def test_next_close_date_must_be_future(self, ledger):
        with pytest.raises(ValidationError):
            run_async(ledger.set_next_close_date("2024-06-02"))

    def test_default_config_from_settings(self, store, clock):
        ledger = WeekLedger(
            store, clock=clock,
            settings=ledger_settings(default_auto_close_day=5, default_auto_close_hour=18),
        )
        config = run_async(ledger.get_auto_close_config())
        assert (config.day_of_week, config.hour) == (5, 18)

    def test_changing_weekday_moves_next_close(self, ledger, store):
        run_async(ledger.set_next_close_date("2024-06-09"))
        config = run_async(ledger.set_auto_close_config(
            {"enabled": True, "dayOfWeek": 5, "hour": 18}
        ))
        assert config.day_of_week == 5
        assert run_async(ledger.get_next_close_date()) == date(2024, 6, 7)
        assert run_async(store.get("finance_auto_close_config")) == {
            "enabled": True, "dayOfWeek": 5, "hour": 18,
        }

    def test_invalid_config_is_rejected(self, ledger):
        with pytest.raises(ValidationError):
            run_async(ledger.set_auto_close_config({"dayOfWeek": 9, "hour": 12}))


class TestHistory:
    """Tests for get_weeks_history."""

    def test_history_newest_first(self, ledger):
        closed_id = run_async(ledger.get_current_week_id())
        add(ledger, "Lunch", "10", "2024-06-04")
        add(ledger, "Books", "5", "2024-05-28")
        run_async(ledger.close_week(is_manual=True))
        add(ledger, "Coffee", "7", "2024-06-05")

        history = run_async(ledger.get_weeks_history())
        assert [w.start_date for w in history] == [
            date(2024, 6, 5), date(2024, 6, 2), date(2024, 5, 26),
        ]
        assert [w.total for w in history] == [Decimal("7"), Decimal("10"), Decimal("5")]
        assert [w.is_closed for w in history] == [False, True, False]
        assert history[1].week_id == closed_id
        # Closed on Wednesday, so it ends the day before its successor starts
        assert history[1].period == "02/06/2024 - 04/06/2024"
        assert history[2].end_date == date(2024, 6, 1)
        assert history[0].end_date == date(2024, 6, 9)

    def test_history_limit(self, ledger):
        add(ledger, "Books", "5", "2024-05-28")
        add(ledger, "Old", "5", "2024-05-14")
        add(ledger, "Coffee", "7", "2024-06-05")
        assert len(run_async(ledger.get_weeks_history(limit=2))) == 2

    def test_open_week_before_closed_on_same_start(self, store, audit_logger):
        clock = FakeClock(datetime(2024, 6, 2, 10, 0))
        ledger = WeekLedger(store, audit_logger, clock, ledger_settings())
        add(ledger, "Bread", "3", "2024-06-02")
        run_async(ledger.close_week(is_manual=True))
        add(ledger, "Milk", "2", "2024-06-02")

        history = run_async(ledger.get_weeks_history())
        assert [w.start_date for w in history] == [date(2024, 6, 2), date(2024, 6, 2)]
        assert [w.is_closed for w in history] == [False, True]

    def test_unmapped_week_uses_earliest_entry(self, ledger, store):
        run_async(store.set("finance_transactions", [{
            "id": "t1",
            "description": "Imported",
            "amount": "4",
            "date": "2024-05-22",
            "weekId": "legacy",
            "createdAt": "2024-05-22T09:00:00",
        }]))
        history = run_async(ledger.get_weeks_history())
        legacy = [w for w in history if w.week_id == "legacy"][0]
        assert legacy.start_date == date(2024, 5, 19)

    def test_closed_week_without_start_is_dropped(self, ledger, store):
        run_async(store.set("finance_closed_weeks", ["orphan"]))
        assert run_async(ledger.get_weeks_history()) == []


class TestEffectivelyClosed:
    """Tests for entries whose week id has no registered start."""

    def _legacy(self, entry_date):
        return Transaction(
            id="legacy-1",
            description="Imported",
            amount=Decimal("4"),
            date=entry_date,
            week_id="legacy",
        )

    def test_unmapped_entry_follows_its_standard_week(self, ledger, store):
        week_id = run_async(ledger.get_current_week_id())
        txn = self._legacy(date(2024, 6, 3))
        assert run_async(ledger.is_effectively_closed(txn)) is False
        run_async(store.set("finance_closed_weeks", [week_id]))
        assert run_async(ledger.is_effectively_closed(txn)) is True

    def test_unmapped_entry_in_current_period_is_shown(self, ledger, store):
        run_async(ledger.get_current_week_id())
        run_async(store.set("finance_transactions", [
            self._legacy(date(2024, 6, 3)).to_storage()
        ]))
        assert [t.id for t in run_async(ledger.get_current_week_transactions())] == ["legacy-1"]


class TestTotalsAndLimit:
    """Tests for totals and the weekly limit."""

    def test_limit_usage_is_capped(self, ledger):
        run_async(ledger.set_weekly_limit("200"))
        add(ledger, "Groceries", "80", "2024-06-05")
        add(ledger, "Shoes", "130", "2024-06-05")
        assert run_async(ledger.get_current_week_total()) == Decimal("210")
        assert run_async(ledger.is_weekly_limit_exceeded()) is True
        assert run_async(ledger.weekly_limit_usage()) == Decimal("100")

    def test_limit_usage_percentage(self, ledger):
        run_async(ledger.set_weekly_limit(200))
        add(ledger, "Groceries", "50", "2024-06-05")
        assert run_async(ledger.get_weekly_limit_usage()) == Decimal("25")
        assert run_async(ledger.is_weekly_limit_exceeded()) is False

    def test_no_limit(self, ledger):
        add(ledger, "Groceries", "50", "2024-06-05")
        assert run_async(ledger.get_weekly_limit()) is None
        assert run_async(ledger.get_weekly_limit_usage()) is None
        assert run_async(ledger.is_weekly_limit_exceeded()) is False

    def test_limit_can_be_removed(self, ledger, store):
        run_async(ledger.set_weekly_limit("200"))
        assert run_async(store.get("finance_weekly_limit")) == "200"
        run_async(ledger.set_weekly_limit(None))
        assert run_async(ledger.get_weekly_limit()) is None

    def test_invalid_limit(self, ledger):
        with pytest.raises(ValidationError):
            run_async(ledger.set_weekly_limit("0"))

    def test_closed_week_resets_usage(self, ledger):
        run_async(ledger.set_weekly_limit("100"))
        add(ledger, "Shoes", "130", "2024-06-05")
        run_async(ledger.close_week(is_manual=True))
        assert run_async(ledger.is_weekly_limit_exceeded()) is False
        assert run_async(ledger.get_weekly_limit_usage()) == Decimal("0")

    def test_month_total(self, ledger):
        add(ledger, "Lunch", "10", "2024-06-04")
        add(ledger, "Rent", "3", "2024-06-01")
        add(ledger, "Books", "5", "2024-05-28")
        assert run_async(ledger.get_current_month_total()) == Decimal("13")

    def test_remove_transaction(self, ledger):
        txn = add(ledger, "Lunch", "10", "2024-06-04")
        assert run_async(ledger.remove_transaction(txn.id)) is True
        assert run_async(ledger.remove_transaction(txn.id)) is False
        assert run_async(ledger.get_all_transactions()) == []


class TestJsonFileLedger:
    """The ledger state survives a restart on the file backend."""

    def test_state_survives_reopen(self, tmp_path, clock):
        path = tmp_path / "ledger.json"
        ledger = WeekLedger(JsonFileKeyValueStore(path), clock=clock, settings=ledger_settings())
        closed_id = run_async(ledger.get_current_week_id())
        add(ledger, "Lunch", "10", "2024-06-04")
        run_async(ledger.close_week(is_manual=True))
        current_id = run_async(ledger.get_current_week_id())

        reopened = WeekLedger(JsonFileKeyValueStore(path), clock=clock, settings=ledger_settings())
        assert run_async(reopened.get_closed_weeks()) == [closed_id]
        assert run_async(reopened.get_current_week_id()) == current_id
        assert len(run_async(reopened.get_all_transactions())) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

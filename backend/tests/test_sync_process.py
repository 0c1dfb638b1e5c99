from datetime import datetime, timedelta

import pytest

from freebusy_sync.config import SyncConfig
from freebusy_sync.core.date_range import DateTimeRange
from freebusy_sync.core.errors import SyncAbortedError, TransientIOError
from freebusy_sync.core.models import CalendarEvent, EventFeed, ExchangeUser
from freebusy_sync.engine.schedule_plus_writer import SchedulePlusWriter
from freebusy_sync.engine.sync_process import SyncProcess

from fakes import (
    FakeCalendarGateway,
    MemorySyncState,
    RecordingWriter,
    StaticExchangeGateway,
)

NOW = datetime(2008, 4, 21, 12, 0)
UPDATED = datetime(2008, 4, 20, 8, 30)


def clock():
    return NOW


def users(*emails):
    return [ExchangeUser(email=email) for email in emails]


def feed(updated=UPDATED, time_zone="UTC"):
    return EventFeed(
        time_zone=time_zone,
        entries=[CalendarEvent(start=NOW, end=NOW + timedelta(hours=1))],
        updated=updated,
    )


def make_process(feeds=None, errors=None, writer=None, store=None, **config):
    return SyncProcess(
        SyncConfig(**config),
        FakeCalendarGateway(feeds, errors),
        StaticExchangeGateway(),
        store if store is not None else MemorySyncState(),
        writer=writer or RecordingWriter(),
        clock=clock,
    )


class TestSyncWindow:
    def test_window_is_centered_on_now(self):
        process = make_process(sync_window_days=7)
        assert process.sync_window() == DateTimeRange(
            NOW - timedelta(days=7), NOW + timedelta(days=7)
        )


class TestSyncUser:
    def test_successful_sync_records_modified_time(self):
        store = MemorySyncState()
        writer = RecordingWriter()
        process = make_process({"a@example.org": feed()}, writer=writer, store=store)

        report = process.run(users("a@example.org"))

        assert report.users_processed == 1
        assert report.users_skipped == 0
        assert report.error_count == 0
        assert store.modified == {"a@example.org": UPDATED}
        [(email, passed_feed, window)] = writer.calls
        assert email == "a@example.org"
        assert window == process.sync_window()

    def test_since_comes_from_previous_sync(self):
        store = MemorySyncState()
        store.update_modified_time("a@example.org", UPDATED)
        process = make_process({"a@example.org": feed()}, store=store)

        process.run(users("a@example.org"))

        [(email, since, window)] = process.calendar_gateway.queries
        assert since == UPDATED

    def test_missing_updated_uses_clock(self):
        store = MemorySyncState()
        process = make_process({"a@example.org": feed(updated=None)}, store=store)

        process.run(users("a@example.org"))

        assert store.modified["a@example.org"] == NOW

    def test_unchanged_calendar_is_skipped(self):
        writer = RecordingWriter()
        process = make_process({}, writer=writer)

        report = process.run(users("a@example.org"))

        assert report.users_skipped == 1
        assert writer.calls == []

    def test_feed_without_time_zone_is_skipped(self):
        store = MemorySyncState()
        writer = RecordingWriter()
        process = make_process(
            {"a@example.org": feed(time_zone=None)}, writer=writer, store=store
        )

        assert process.sync_user(users("a@example.org")[0]) is False
        assert writer.calls == []
        assert store.modified == {}


class TestErrors:
    def test_errors_are_counted_and_recorded(self):
        store = MemorySyncState()
        process = make_process(
            {"a@example.org": feed(), "c@example.org": feed()},
            errors={"b@example.org": TransientIOError("calendar unreachable")},
            store=store,
            error_threshold=5,
        )

        report = process.run(users("a@example.org", "b@example.org", "c@example.org"))

        assert report.users_processed == 2
        assert report.error_count == 1
        assert store.errors == {"b@example.org": ["calendar unreachable"]}
        assert "b@example.org" not in store.modified

    def test_writer_failure_does_not_update_modified_time(self):
        store = MemorySyncState()
        process = make_process(
            {"a@example.org": feed()},
            writer=RecordingWriter(fail_for=["a@example.org"]),
            store=store,
        )

        report = process.run(users("a@example.org"))

        assert report.error_count == 1
        assert store.modified == {}
        assert store.errors == {"a@example.org": ["write failed for a@example.org"]}

    def test_threshold_aborts_batch(self):
        emails = [f"user{i}@example.org" for i in range(10)]
        errors = {email: RuntimeError("boom") for email in emails}
        process = make_process({}, errors=errors, error_threshold=2)

        with pytest.raises(SyncAbortedError) as exc_info:
            process.run(users(*emails))

        assert exc_info.value.error_count == 3
        assert exc_info.value.threshold == 2
        # the batch stops pulling users once aborted
        assert len(process.calendar_gateway.queries) == 3

    def test_threshold_reached_but_not_exceeded(self):
        errors = {"a@example.org": RuntimeError("boom"), "b@example.org": RuntimeError("boom")}
        process = make_process({}, errors=errors, error_threshold=2)

        report = process.run(users("a@example.org", "b@example.org"))

        assert report.error_count == 2


class TestThreads:
    def test_all_users_processed_with_several_workers(self):
        emails = [f"user{i}@example.org" for i in range(25)]
        writer = RecordingWriter()
        store = MemorySyncState()
        process = make_process(
            {email: feed() for email in emails}, writer=writer, store=store, thread_count=4
        )

        report = process.run(users(*emails))

        assert report.users_processed == 25
        assert sorted(email for email, _, _ in writer.calls) == sorted(emails)
        assert set(store.modified) == set(emails)

    def test_thread_count_override(self):
        emails = [f"user{i}@example.org" for i in range(5)]
        process = make_process({email: feed() for email in emails})

        report = process.run(users(*emails), thread_count=3)

        assert report.users_processed == 5


class TestSqliteBackedSync:
    def test_sync_state_persisted(self, sync_state_store):
        gateway = StaticExchangeGateway()
        process = SyncProcess(
            SyncConfig(),
            FakeCalendarGateway({"a@example.org": feed()}),
            gateway,
            sync_state_store,
            writer=SchedulePlusWriter(),
            clock=clock,
        )

        report = process.run(users("a@example.org"))

        assert report.users_processed == 1
        assert sync_state_store.get_modified_time("a@example.org") == UPDATED
        [props] = gateway.free_busy.properties
        assert props["email"] == "a@example.org"

    def test_sync_error_persisted(self, sync_state_store):
        process = SyncProcess(
            SyncConfig(),
            FakeCalendarGateway(errors={"a@example.org": RuntimeError("boom")}),
            StaticExchangeGateway(),
            sync_state_store,
            writer=RecordingWriter(),
            clock=clock,
        )

        process.run(users("a@example.org"))

        state = sync_state_store.get_sync_state("a@example.org")
        assert state.error_count == 1
        assert state.last_error == "boom"
        assert state.last_modified is None


class BrokenErrorLog(MemorySyncState):
    def record_sync_error(self, email, message):
        raise RuntimeError("sync-state database unavailable")


class TestErrorLogFailure:
    def test_failure_is_counted_and_queue_continues(self):
        emails = ["a@example.org", "b@example.org", "c@example.org"]
        store = BrokenErrorLog()
        process = make_process(
            {"b@example.org": feed(), "c@example.org": feed()},
            errors={"a@example.org": RuntimeError("boom")},
            store=store,
            thread_count=1,
        )

        report = process.run(users(*emails))

        assert report.error_count == 1
        assert report.users_processed == 2
        assert set(store.modified) == {"b@example.org", "c@example.org"}

    def test_threshold_still_aborts(self):
        emails = [f"user{i}@example.org" for i in range(5)]
        process = make_process(
            {},
            errors={email: RuntimeError("boom") for email in emails},
            store=BrokenErrorLog(),
            error_threshold=1,
        )

        with pytest.raises(SyncAbortedError) as exc_info:
            process.run(users(*emails))

        assert exc_info.value.error_count == 2

import threading
import time
from datetime import date, timedelta

import pytest
from sqlmodel import Session

from core.errors import ProviderError
from core.settings import CalendarSettings
from services.accounts import ConnectedAccount
from services.calendar_sync import (
    LAST_SYNC_KEY,
    SYNCED_EVENTS_KEY,
    CalendarSyncService,
)
from services.google_sync import CalendarEvent
from services.task_repository import TaskRepository
from storage.db import create_store_engine, init_db


USER = "user-1"
TODAY = date(2024, 1, 3)


def _iso(dt):
    return dt.isoformat()


def _event(event_id, summary, start=None, end=None, *, all_day=False):
    key = "date" if all_day else "dateTime"
    item = {"id": event_id, "summary": summary}
    if start is not None:
        item["start"] = {key: start}
    if end is not None:
        item["end"] = {key: end}
    return CalendarEvent.from_api(item)


class FakeCalendar:
    def __init__(self, events, *, error=None, delay=0.0):
        self.events = events
        self.error = error
        self.delay = delay
        self.windows = []

    def list_range(self, start_dt, end_dt):
        self.windows.append((start_dt, end_dt))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.events)


class FakeCalendarFactory:
    """Maps access tokens to fake calendars and counts fetches."""

    def __init__(self, calendars):
        self.calendars = calendars
        self.calls = []

    def __call__(self, token):
        self.calls.append(token)
        return self.calendars[token]


@pytest.fixture()
def make_service(tasks, store, clock, settings):
    def build(calendars, **kwargs):
        factory = FakeCalendarFactory(calendars)
        service = CalendarSyncService(
            tasks,
            store,
            clock,
            CalendarSettings(),
            calendar_factory=factory,
            log_path=settings.log_path,
            **kwargs,
        )
        return service, factory

    return build


def test_standup_scenario_creates_one_completed_task(make_service, tasks, store, fake_now):
    now = fake_now.value
    events = [
        _event("E1", "Standup", _iso(now - timedelta(hours=2)), _iso(now - timedelta(hours=1))),
        _event("E2", "", _iso(now + timedelta(hours=1)), _iso(now + timedelta(hours=2))),
    ]
    service, _ = make_service({"tok": FakeCalendar(events)})

    result = service.sync_account(USER, "tok")

    assert (result.created, result.skipped, result.failed) == (1, 1, 0)
    created = tasks.list_for_user(USER)
    assert len(created) == 1
    task = created[0]
    assert task.title == "📅 Standup"
    assert task.category == "Work"
    assert task.completed is True
    assert task.is_from_calendar is True
    assert task.calendar_event_id == "E1"
    assert task.day == TODAY
    assert store.for_user(USER).get(SYNCED_EVENTS_KEY) == ["E1"]
    assert store.for_user(USER).get(LAST_SYNC_KEY) == "2024-01-03"


def test_future_event_is_not_completed(make_service, tasks, fake_now):
    now = fake_now.value
    events = [_event("E3", "Review", _iso(now + timedelta(hours=1)), _iso(now + timedelta(hours=2)))]
    service, _ = make_service({"tok": FakeCalendar(events)})

    service.sync_account(USER, "tok")

    (task,) = tasks.list_for_user(USER)
    assert task.completed is False
    assert task.event_end_time == _iso(now + timedelta(hours=2))


def test_resync_is_idempotent(make_service, tasks, fake_now):
    now = fake_now.value
    events = [_event("E1", "Standup", _iso(now), _iso(now + timedelta(hours=1)))]
    service, _ = make_service({"tok": FakeCalendar(events)})

    service.sync_account(USER, "tok")
    again = service.sync_account(USER, "tok")

    assert again.created == 0
    assert again.skipped == 1
    assert len(tasks.list_for_user(USER)) == 1


def test_events_without_bounds_are_skipped(make_service, tasks, store):
    events = [
        _event("E4", "No end", "2024-01-03T09:00:00+05:30", None),
        _event("E5", "No start", None, "2024-01-03T09:00:00+05:30"),
    ]
    service, _ = make_service({"tok": FakeCalendar(events)})

    result = service.sync_account(USER, "tok")

    assert (result.created, result.skipped) == (0, 2)
    assert tasks.list_for_user(USER) == []
    assert store.for_user(USER).get(SYNCED_EVENTS_KEY) == []


def test_all_day_event_ending_tomorrow_stays_open(make_service, tasks):
    events = [_event("E6", "Offsite", "2024-01-03", "2024-01-04", all_day=True)]
    service, _ = make_service({"tok": FakeCalendar(events)})

    service.sync_account(USER, "tok")

    (task,) = tasks.list_for_user(USER)
    assert task.completed is False
    assert task.event_end_time == "2024-01-04"


def test_fetch_window_is_reference_day(make_service):
    calendar = FakeCalendar([])
    service, _ = make_service({"tok": calendar})

    service.sync_account(USER, "tok")

    start, end = calendar.windows[0]
    assert start.isoformat() == "2024-01-03T00:00:00+05:30"
    assert end.date() == TODAY


def test_fetch_failure_leaves_state_untouched(make_service, store):
    state = store.for_user(USER)
    state.set(SYNCED_EVENTS_KEY, ["OLD"])
    state.set(LAST_SYNC_KEY, "2024-01-02")
    service, _ = make_service({"tok": FakeCalendar([], error=ProviderError("boom", status=500))})

    with pytest.raises(ProviderError):
        service.sync_account(USER, "tok")

    assert state.get(SYNCED_EVENTS_KEY) == ["OLD"]
    assert state.get(LAST_SYNC_KEY) == "2024-01-02"


def test_one_failed_event_does_not_abort_batch(make_service, tasks, store, fake_now):
    now = fake_now.value
    # a task already holding E7 makes the store reject a second import of it
    tasks.create(USER, title="old", day=TODAY, is_from_calendar=True, calendar_event_id="E7")
    events = [
        _event("E7", "Clash", _iso(now), _iso(now + timedelta(hours=1))),
        _event("E8", "Broken end", _iso(now), "not-a-time"),
        _event("E9", "Lunch", _iso(now), _iso(now + timedelta(hours=1))),
    ]
    service, _ = make_service({"tok": FakeCalendar(events)})

    result = service.sync_account(USER, "tok")

    assert (result.created, result.skipped, result.failed) == (1, 0, 2)
    assert store.for_user(USER).get(SYNCED_EVENTS_KEY) == ["E9"]
    assert sorted(t.calendar_event_id for t in tasks.list_for_user(USER)) == ["E7", "E9"]


def test_sync_all_accounts_isolates_failing_account(make_service, tasks, fake_now):
    now = fake_now.value
    accounts = [
        ConnectedAccount(email="bad@example.com", access_token="bad"),
        ConnectedAccount(email="good@example.com", access_token="good"),
    ]
    service, factory = make_service(
        {
            "bad": FakeCalendar([], error=ProviderError("401", status=401)),
            "good": FakeCalendar([_event("E1", "Planning", _iso(now), _iso(now + timedelta(hours=1)))]),
        }
    )

    result = service.sync_all_accounts(USER, accounts)

    assert factory.calls == ["bad", "good"]
    assert result.total_created == 1
    assert result.total_failed == 1
    assert len(tasks.list_for_user(USER)) == 1


def test_auto_sync_runs_once_per_day(make_service, tasks, fake_now):
    now = fake_now.value
    accounts = [ConnectedAccount(email="me@example.com", access_token="tok")]
    events = [_event("E1", "Standup", _iso(now), _iso(now + timedelta(minutes=15)))]
    service, factory = make_service({"tok": FakeCalendar(events)})

    first = service.auto_sync_if_needed(USER, accounts)
    second = service.auto_sync_if_needed(USER, accounts)

    assert first.ran is True and first.total_created == 1
    assert second.ran is False and second.total_created == 0
    assert factory.calls == ["tok"]
    assert len(tasks.list_for_user(USER)) == 1


def test_auto_sync_runs_again_next_reference_day(make_service, fake_now):
    accounts = [ConnectedAccount(email="me@example.com", access_token="tok")]
    service, factory = make_service({"tok": FakeCalendar([])})

    service.auto_sync_if_needed(USER, accounts)
    fake_now.value = fake_now.value + timedelta(days=1)
    result = service.auto_sync_if_needed(USER, accounts)

    assert result.ran is True
    assert len(factory.calls) == 2


def test_auto_sync_retries_after_failed_fetch(make_service):
    accounts = [ConnectedAccount(email="me@example.com", access_token="tok")]
    calendar = FakeCalendar([], error=ProviderError("503", status=503))
    service, factory = make_service({"tok": calendar})

    first = service.auto_sync_if_needed(USER, accounts)
    calendar.error = None
    second = service.auto_sync_if_needed(USER, accounts)

    assert first.ran is True and first.total_failed == 1
    assert second.ran is True
    assert len(factory.calls) == 2


def test_auto_complete_expired_only_touches_ended_calendar_tasks(make_service, tasks, fake_now):
    now = fake_now.value
    ended = tasks.create(
        USER, title="ended", day=TODAY, is_from_calendar=True,
        calendar_event_id="A", event_end_time=_iso(now - timedelta(minutes=1)),
    )
    upcoming = tasks.create(
        USER, title="upcoming", day=TODAY, is_from_calendar=True,
        calendar_event_id="B", event_end_time=_iso(now + timedelta(minutes=1)),
    )
    no_end = tasks.create(USER, title="no end", day=TODAY, is_from_calendar=True, calendar_event_id="C")
    manual = tasks.create(USER, title="manual", day=TODAY, event_end_time=_iso(now - timedelta(hours=1)))
    broken = tasks.create(
        USER, title="broken", day=TODAY, is_from_calendar=True,
        calendar_event_id="D", event_end_time="garbage",
    )
    service, _ = make_service({})

    assert service.auto_complete_expired(USER) == 1

    state = {t.id: t.completed for t in tasks.list_for_user(USER)}
    assert state == {
        ended.id: True,
        upcoming.id: False,
        no_end.id: False,
        manual.id: False,
        broken.id: False,
    }
    assert service.auto_complete_expired(USER) == 0


def test_dedup_is_per_user(make_service, tasks, fake_now):
    now = fake_now.value
    events = [_event("E1", "Standup", _iso(now), _iso(now + timedelta(hours=1)))]
    service, _ = make_service({"tok": FakeCalendar(events)})

    service.sync_account("alice", "tok")
    result = service.sync_account("bob", "tok")

    assert result.created == 1
    assert len(tasks.list_for_user("alice")) == 1
    assert len(tasks.list_for_user("bob")) == 1


def test_concurrent_syncs_for_one_user_import_once(tmp_path, store, clock, settings, fake_now):
    engine = init_db(create_store_engine(tmp_path / "threads.db"))
    repo = TaskRepository(lambda: Session(engine))
    now = fake_now.value
    events = [_event("E1", "Standup", _iso(now), _iso(now + timedelta(hours=1)))]
    service = CalendarSyncService(
        repo,
        store,
        clock,
        calendar_factory=lambda token: FakeCalendar(events, delay=0.05),
        log_path=settings.log_path,
    )
    results = []

    def run():
        results.append(service.sync_account(USER, "tok"))

    threads = [threading.Thread(target=run) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(r.created for r in results) == [0, 1]
    assert sum(r.failed for r in results) == 0
    assert len(repo.list_for_user(USER)) == 1

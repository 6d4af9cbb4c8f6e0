from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional

from core.errors import MissionControlError
from core.settings import CalendarSettings
from services.accounts import ConnectedAccount
from services.google_calendar import GoogleCalendar
from services.google_sync import CalendarEvent
from services.task_repository import TaskRepository
from storage.state_store import KeyValueStore
from utils.datetime_utils import ReferenceClock
from utils.logs import ensure_logger


SYNCED_EVENTS_KEY = "syncedCalendarEvents"
LAST_SYNC_KEY = "lastCalendarSync"

CalendarFactory = Callable[[str], GoogleCalendar]


@dataclass
class SyncResult:
    created: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class SyncAllResult:
    total_created: int = 0
    total_failed: int = 0


@dataclass
class AutoSyncResult:
    ran: bool
    total_created: int = 0
    total_failed: int = 0


class UserLocks:
    """One re-entrant in-process lock per user id."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = defaultdict(threading.RLock)

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks[user_id]
        with lock:
            yield


class CalendarSyncService:
    """Imports today's calendar events as tasks and completes them once they end.

    The dedup set of imported event ids and the last-synced day live in the
    local state store, namespaced per user. Reading the dedup set, creating
    tasks and writing the set back happen while holding that user's lock.
    """

    def __init__(
        self,
        tasks: TaskRepository,
        store: KeyValueStore,
        clock: ReferenceClock,
        settings: Optional[CalendarSettings] = None,
        *,
        calendar_factory: Optional[CalendarFactory] = None,
        locks: Optional[UserLocks] = None,
        log_path: Optional[Path] = None,
    ) -> None:
        self.tasks = tasks
        self.store = store
        self.clock = clock
        self.settings = settings or CalendarSettings()
        self.calendar_factory = calendar_factory or self._default_calendar
        self.locks = locks or UserLocks()
        self.logger = ensure_logger("mission_control.sync", log_path)

    def _default_calendar(self, access_token: str) -> GoogleCalendar:
        return GoogleCalendar(
            access_token,
            self.settings.calendar_id,
            max_results=self.settings.max_results,
        )

    # ------------------------------------------------------------------
    # State helpers
    def synced_event_ids(self, user_id: str) -> List[str]:
        raw = self.store.for_user(user_id).get(SYNCED_EVENTS_KEY, [])
        if not isinstance(raw, list):
            return []
        return [str(item) for item in raw]

    def synced_event_count(self, user_id: str) -> int:
        count = len(self.synced_event_ids(user_id))
        self.logger.info("Currently tracking %s synced calendar events for %s", count, user_id)
        return count

    def last_synced_on(self, user_id: str) -> Optional[str]:
        value = self.store.for_user(user_id).get(LAST_SYNC_KEY)
        return str(value) if value else None

    # ------------------------------------------------------------------
    # Public API
    def fetch_events_for_today(self, access_token: str) -> List[CalendarEvent]:
        start, end = self.clock.day_bounds()
        calendar = self.calendar_factory(access_token)
        return calendar.list_range(start, end)

    def sync_account(self, user_id: str, access_token: str) -> SyncResult:
        with self.locks.hold(user_id):
            state = self.store.for_user(user_id)
            synced = self.synced_event_ids(user_id)
            known = set(synced)
            today = self.clock.today()

            events = self.fetch_events_for_today(access_token)
            self.logger.info("[%s] Found %s events for today", today.isoformat(), len(events))

            result = SyncResult()
            for event in events:
                if not event.id or event.id in known:
                    result.skipped += 1
                    continue
                if not event.has_title:
                    self.logger.info("Skipping untitled event %s", event.id)
                    result.skipped += 1
                    continue
                if not event.has_bounds:
                    self.logger.info("Skipping event %s without start/end", event.id)
                    result.skipped += 1
                    continue

                try:
                    completed = self.clock.has_passed(event.end)
                    self.tasks.create(
                        user_id,
                        title=f"{self.settings.title_prefix}{event.summary}",
                        category=self.settings.category,
                        day=today,
                        completed=completed,
                        is_from_calendar=True,
                        calendar_event_id=event.id,
                        event_end_time=event.end,
                    )
                except MissionControlError as exc:
                    self.logger.error("Failed to create task for event %s: %s", event.id, exc)
                    result.failed += 1
                    continue

                known.add(event.id)
                synced.append(event.id)
                result.created += 1
                self.logger.info(
                    "Created task: %s%s", event.summary, " [completed]" if completed else ""
                )

            state.set(SYNCED_EVENTS_KEY, synced)
            state.set(LAST_SYNC_KEY, today.isoformat())
            self.logger.info(
                "Calendar synced for %s: %s created, %s skipped, %s failed",
                user_id,
                result.created,
                result.skipped,
                result.failed,
            )
            return result

    def sync_all_accounts(self, user_id: str, accounts: Iterable[ConnectedAccount]) -> SyncAllResult:
        total = SyncAllResult()
        for account in accounts:
            try:
                result = self.sync_account(user_id, account.access_token)
            except MissionControlError as exc:
                self.logger.error("Failed to sync calendar %s: %s", account.email, exc)
                total.total_failed += 1
                continue
            total.total_created += result.created
            total.total_failed += result.failed
        return total

    def auto_sync_if_needed(self, user_id: str, accounts: Iterable[ConnectedAccount]) -> AutoSyncResult:
        with self.locks.hold(user_id):
            if self.last_synced_on(user_id) == self.clock.today_str():
                self.logger.info("Already synced today for %s, skipping", user_id)
                return AutoSyncResult(ran=False)

            self.logger.info("Auto-syncing today's calendar for %s", user_id)
            result = self.sync_all_accounts(user_id, accounts)
            return AutoSyncResult(
                ran=True,
                total_created=result.total_created,
                total_failed=result.total_failed,
            )

    def auto_complete_expired(self, user_id: str) -> int:
        completed_count = 0
        for task in self.tasks.list_for_user(user_id):
            if not task.is_from_calendar or task.completed or not task.event_end_time:
                continue
            try:
                if not self.clock.has_passed(task.event_end_time):
                    continue
                self.tasks.update(user_id, task.id, completed=True)
            except MissionControlError as exc:
                self.logger.warning("Could not auto-complete task %s: %s", task.id, exc)
                continue
            completed_count += 1
            self.logger.info("Auto-completed calendar task: %s", task.title)

        if completed_count:
            self.logger.info("Auto-completed %s expired calendar tasks", completed_count)
        return completed_count


__all__ = [
    "AutoSyncResult",
    "CalendarSyncService",
    "LAST_SYNC_KEY",
    "SYNCED_EVENTS_KEY",
    "SyncAllResult",
    "SyncResult",
    "UserLocks",
]

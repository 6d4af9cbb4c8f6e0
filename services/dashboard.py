from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from core.errors import MissionControlError
from core.settings import AppSettings
from models.entries import DailyEntry
from models.task import Task
from services.accounts import AccountRegistry
from services.ai_client import GenerativeTextClient
from services.ai_parsing import CategoryGenerator, NoteParser, WeeklyAnalyst
from services.calendar_sync import AutoSyncResult, CalendarFactory, CalendarSyncService
from services.categories import CategoryService
from services.notes import NoteService
from services.progress import ProgressService
from services.records import RecordRepository
from services.rollover import RolloverResult, RolloverService
from services.task_repository import TaskRepository
from storage.db import SessionFactory, create_store_engine, init_db, make_session_factory
from storage.state_store import KeyValueStore
from utils.datetime_utils import ReferenceClock
from utils.logs import ensure_logger


@dataclass
class DashboardSnapshot:
    rollover: RolloverResult
    auto_completed: int
    sync: Optional[AutoSyncResult]
    daily: Optional[DailyEntry]
    today_tasks: List[Task] = field(default_factory=list)
    backlog: List[Task] = field(default_factory=list)
    sync_error: Optional[str] = None


class DashboardService:
    """The sequence a dashboard load triggers: rollover, auto-complete, auto-sync."""

    def __init__(
        self,
        tasks: TaskRepository,
        rollover: RolloverService,
        calendar_sync: CalendarSyncService,
        accounts: AccountRegistry,
        progress: ProgressService,
        clock: ReferenceClock,
        *,
        log_path: Optional[Path] = None,
    ):
        self.tasks = tasks
        self.rollover = rollover
        self.calendar_sync = calendar_sync
        self.accounts = accounts
        self.progress = progress
        self.clock = clock
        self.logger = ensure_logger("mission_control.dashboard", log_path)

    def load(self, user_id: str) -> DashboardSnapshot:
        rolled = self.rollover.rollover_incomplete(user_id)
        auto_completed = self.calendar_sync.auto_complete_expired(user_id)

        sync: Optional[AutoSyncResult] = None
        sync_error: Optional[str] = None
        connected = self.accounts.list(user_id)
        if connected:
            try:
                sync = self.calendar_sync.auto_sync_if_needed(user_id, connected)
                if sync.ran and sync.total_created:
                    self.logger.info("Auto-synced %s calendar events", sync.total_created)
            except MissionControlError as exc:
                self.logger.warning("Auto-sync failed (you can sync manually): %s", exc)
                sync_error = str(exc)

        daily: Optional[DailyEntry] = None
        try:
            daily = self.progress.update_daily(user_id)
        except MissionControlError as exc:
            self.logger.warning("Could not update daily progress: %s", exc)

        today = self.clock.today()
        all_tasks = self.tasks.list_for_user(user_id)
        return DashboardSnapshot(
            rollover=rolled,
            auto_completed=auto_completed,
            sync=sync,
            daily=daily,
            today_tasks=[t for t in all_tasks if t.day == today],
            backlog=[t for t in all_tasks if t.day < today and not t.completed],
            sync_error=sync_error,
        )


@dataclass
class AppServices:
    settings: AppSettings
    clock: ReferenceClock
    store: KeyValueStore
    tasks: TaskRepository
    records: RecordRepository
    accounts: AccountRegistry
    categories: CategoryService
    calendar_sync: CalendarSyncService
    rollover: RolloverService
    notes: NoteService
    progress: ProgressService
    analyst: WeeklyAnalyst
    dashboard: DashboardService

    @classmethod
    def build(
        cls,
        settings: AppSettings,
        *,
        session_factory: Optional[SessionFactory] = None,
        clock: Optional[ReferenceClock] = None,
        ai_client: Optional[GenerativeTextClient] = None,
        calendar_factory: Optional[CalendarFactory] = None,
        now: Optional[Callable] = None,
    ) -> "AppServices":
        if session_factory is None:
            engine = init_db(create_store_engine(settings.db_path))
            session_factory = make_session_factory(engine)
        clock = clock or ReferenceClock(settings.calendar.reference_timezone, now=now)
        store = KeyValueStore(settings.state_path)
        tasks = TaskRepository(session_factory)
        records = RecordRepository(session_factory)
        accounts = AccountRegistry(store)
        categories = CategoryService(store, clock)
        ai = ai_client or GenerativeTextClient(settings.ai)

        calendar_sync = CalendarSyncService(
            tasks,
            store,
            clock,
            settings.calendar,
            calendar_factory=calendar_factory,
            log_path=settings.log_path,
        )
        rollover = RolloverService(tasks, clock, log_path=settings.log_path)
        progress = ProgressService(tasks, records, clock)
        notes = NoteService(
            tasks,
            records,
            categories,
            clock,
            parser=NoteParser(ai),
            generator=CategoryGenerator(ai),
        )
        dashboard = DashboardService(
            tasks,
            rollover,
            calendar_sync,
            accounts,
            progress,
            clock,
            log_path=settings.log_path,
        )
        return cls(
            settings=settings,
            clock=clock,
            store=store,
            tasks=tasks,
            records=records,
            accounts=accounts,
            categories=categories,
            calendar_sync=calendar_sync,
            rollover=rollover,
            notes=notes,
            progress=progress,
            analyst=WeeklyAnalyst(ai),
            dashboard=dashboard,
        )

    def reset_user_data(self, user_id: str) -> int:
        """Delete every stored record and local state entry for ``user_id``."""

        removed = self.tasks.clear_user(user_id)
        removed += self.records.clear_user(user_id)
        self.store.for_user(user_id).clear()
        return removed


__all__ = ["AppServices", "DashboardService", "DashboardSnapshot"]

"""Daily and weekly progress, and AI weekly reviews against a goal."""
from __future__ import annotations

from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, List, Optional

from core.errors import PersistenceError
from models.entries import DailyEntry, WeeklyAnalysis, WeeklyEntry
from models.task import Task
from services.ai_parsing import WeeklyAnalyst
from services.records import RecordRepository
from services.task_repository import TaskRepository
from utils.datetime_utils import ReferenceClock, week_start


def rounded_percent(done: int, total: int) -> int:
    """Percentage rounded half-up."""

    if total <= 0:
        return 0
    return (200 * done + total) // (2 * total)


def _unique(values: List[str]) -> List[str]:
    return list(OrderedDict.fromkeys(values))


class ProgressService:
    def __init__(self, tasks: TaskRepository, records: RecordRepository, clock: ReferenceClock):
        self.tasks = tasks
        self.records = records
        self.clock = clock

    def update_daily(self, user_id: str) -> DailyEntry:
        today = self.clock.today()
        todays = self.tasks.list_for_user(user_id, day=today)
        done = [t for t in todays if t.completed]
        entry = DailyEntry(
            user_id=user_id,
            day=today,
            completed_categories=_unique([t.category for t in done]),
            progress_percent=rounded_percent(len(done), len(todays)),
        )
        return self.records.save_daily(entry)

    def tasks_for_week(self, user_id: str, start: date) -> List[Task]:
        end = start + timedelta(days=7)
        return [t for t in self.tasks.list_for_user(user_id) if start <= t.day < end]

    def weekly_breakdown(self, user_id: str, start: Optional[date] = None) -> WeeklyEntry:
        first_day = start or week_start(self.clock.today())
        week_tasks = self.tasks_for_week(user_id, first_day)

        progress: Dict[str, Dict[str, int]] = {}
        for category in _unique([t.category for t in week_tasks]):
            in_category = [t for t in week_tasks if t.category == category]
            achieved = sum(1 for t in in_category if t.completed)
            progress[category] = {
                "target": len(in_category),
                "achieved": achieved,
                "percent": rounded_percent(achieved, len(in_category)),
            }
        ordered = dict(sorted(progress.items(), key=lambda kv: kv[1]["target"], reverse=True))

        completed = sum(1 for t in week_tasks if t.completed)
        entry = WeeklyEntry(
            user_id=user_id,
            week_start=first_day,
            category_progress=ordered,
            overall_progress=rounded_percent(completed, len(week_tasks)),
        )
        return self.records.save_weekly(entry)

    def analyze_week(
        self,
        user_id: str,
        goal_id: int,
        analyst: WeeklyAnalyst,
        start: Optional[date] = None,
    ) -> WeeklyAnalysis:
        goal = self.records.get_goal(user_id, goal_id)
        if goal is None:
            raise PersistenceError(f"Goal {goal_id} not found")
        first_day = start or week_start(self.clock.today())
        completed = [t.title for t in self.tasks_for_week(user_id, first_day) if t.completed]
        text = analyst.analyze(goal.title, goal.description, completed)
        return self.records.save_analysis(
            WeeklyAnalysis(
                user_id=user_id,
                week_start=first_day,
                goal_id=goal.id,
                goal_title=goal.title,
                analysis=text,
                tasks_reviewed=len(completed),
            )
        )


__all__ = ["ProgressService", "rounded_percent"]

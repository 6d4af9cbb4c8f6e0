"""ORM models exposed by the Mission Control application."""
from .task import Task
from .goal import Goal
from .entries import DailyEntry, WeeklyAnalysis, WeeklyEntry

__all__ = ["DailyEntry", "Goal", "Task", "WeeklyAnalysis", "WeeklyEntry"]

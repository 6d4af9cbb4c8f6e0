"""SQLModel tables for daily/weekly progress and AI weekly reviews."""

from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now


class DailyEntry(SQLModel, table=True):
    """One row per user and canonical day."""

    user_id: str = Field(primary_key=True)
    day: date = Field(primary_key=True)
    completed_categories: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    progress_percent: int = 0


class WeeklyEntry(SQLModel, table=True):
    """Per-category progress for a Monday-based week."""

    user_id: str = Field(primary_key=True)
    week_start: date = Field(primary_key=True)
    # category -> {"target", "achieved", "percent"}
    category_progress: Dict[str, Dict[str, int]] = Field(default_factory=dict, sa_column=Column(JSON))
    overall_progress: int = 0


class WeeklyAnalysis(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    week_start: date
    goal_id: int
    goal_title: str
    analysis: str
    tasks_reviewed: int = 0
    created_at: datetime = Field(default_factory=utc_now)


__all__ = ["DailyEntry", "WeeklyAnalysis", "WeeklyEntry"]

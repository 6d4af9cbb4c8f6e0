# mission_control/models/task.py
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now


class Task(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("user_id", "calendar_event_id", name="ux_task_user_event"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    title: str
    category: str = "Other"
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    day: date = Field(index=True)          # canonical civil date
    completed: bool = False
    is_from_calendar: bool = False
    calendar_event_id: Optional[str] = Field(default=None, index=True)
    event_end_time: Optional[str] = None   # provider end bound, date or RFC3339
    created_at: datetime = Field(default_factory=utc_now)

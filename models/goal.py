# mission_control/models/goal.py

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from utils.datetime_utils import utc_now


class Goal(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    title: str
    description: str = ""
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)


__all__ = ["Goal"]

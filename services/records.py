"""Persistence helpers for goals, progress entries and weekly reviews."""

from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlmodel import select

from core.errors import PersistenceError
from models.entries import DailyEntry, WeeklyAnalysis, WeeklyEntry
from models.goal import Goal
from services.task_repository import store_errors
from storage.db import SessionFactory, get_session


class RecordRepository:
    """Wrapper around SQLModel sessions for the non-task records."""

    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    # ----- goals -----
    def create_goal(self, user_id: str, title: str, description: str = "", *, is_active: bool = True) -> Goal:
        title = title.strip()
        if not title:
            raise ValueError("Goal title must not be empty")
        with store_errors("Goal create"), self._session_factory() as session:
            goal = Goal(user_id=user_id, title=title, description=description.strip(), is_active=is_active)
            session.add(goal)
            session.commit()
            session.refresh(goal)
            return goal

    def get_goal(self, user_id: str, goal_id: int) -> Optional[Goal]:
        with store_errors("Goal read"), self._session_factory() as session:
            goal = session.get(Goal, goal_id)
            if goal is None or goal.user_id != user_id:
                return None
            return goal

    def list_goals(self, user_id: str) -> List[Goal]:
        with store_errors("Goal query"), self._session_factory() as session:
            stmt = select(Goal).where(Goal.user_id == user_id).order_by(Goal.created_at.desc(), Goal.id.desc())
            return list(session.exec(stmt))

    def update_goal(self, user_id: str, goal_id: int, **fields) -> Goal:
        unknown = set(fields) - {"title", "description", "is_active"}
        if unknown:
            raise ValueError(f"Cannot update goal fields: {', '.join(sorted(unknown))}")
        if "title" in fields:
            fields["title"] = (fields["title"] or "").strip()
            if not fields["title"]:
                raise ValueError("Goal title must not be empty")
        with store_errors("Goal update"), self._session_factory() as session:
            goal = session.get(Goal, goal_id)
            if goal is None or goal.user_id != user_id:
                raise PersistenceError(f"Goal {goal_id} not found")
            for key, value in fields.items():
                setattr(goal, key, value)
            session.add(goal)
            session.commit()
            session.refresh(goal)
            return goal

    def delete_goal(self, user_id: str, goal_id: int) -> None:
        with store_errors("Goal delete"), self._session_factory() as session:
            goal = session.get(Goal, goal_id)
            if goal is None or goal.user_id != user_id:
                raise PersistenceError(f"Goal {goal_id} not found")
            session.delete(goal)
            session.commit()

    # ----- daily -----
    def save_daily(self, entry: DailyEntry) -> DailyEntry:
        with store_errors("Daily entry save"), self._session_factory() as session:
            merged = session.merge(entry)
            session.commit()
            session.refresh(merged)
            return merged

    def get_daily(self, user_id: str, day: date) -> Optional[DailyEntry]:
        with store_errors("Daily entry read"), self._session_factory() as session:
            return session.get(DailyEntry, (user_id, day))

    def list_daily(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[DailyEntry]:
        with store_errors("Daily entry query"), self._session_factory() as session:
            stmt = select(DailyEntry).where(DailyEntry.user_id == user_id)
            if start is not None and end is not None:
                stmt = stmt.where(DailyEntry.day >= start, DailyEntry.day <= end)
            return list(session.exec(stmt.order_by(DailyEntry.day.desc())))

    # ----- weekly -----
    def save_weekly(self, entry: WeeklyEntry) -> WeeklyEntry:
        with store_errors("Weekly entry save"), self._session_factory() as session:
            merged = session.merge(entry)
            session.commit()
            session.refresh(merged)
            return merged

    # ----- analyses -----
    def save_analysis(self, analysis: WeeklyAnalysis) -> WeeklyAnalysis:
        with store_errors("Weekly analysis save"), self._session_factory() as session:
            session.add(analysis)
            session.commit()
            session.refresh(analysis)
            return analysis

    def list_analyses(self, user_id: str) -> List[WeeklyAnalysis]:
        with store_errors("Weekly analysis query"), self._session_factory() as session:
            stmt = (
                select(WeeklyAnalysis)
                .where(WeeklyAnalysis.user_id == user_id)
                .order_by(WeeklyAnalysis.created_at.desc(), WeeklyAnalysis.id.desc())
            )
            return list(session.exec(stmt))

    # ------------------------------------------------------------------
    def clear_user(self, user_id: str) -> int:
        removed = 0
        with store_errors("Record reset"), self._session_factory() as session:
            for model in (Goal, DailyEntry, WeeklyEntry, WeeklyAnalysis):
                rows = list(session.exec(select(model).where(model.user_id == user_id)))
                for row in rows:
                    session.delete(row)
                removed += len(rows)
            session.commit()
        return removed


__all__ = ["RecordRepository"]

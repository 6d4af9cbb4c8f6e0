from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from core.errors import PersistenceError
from models.task import Task
from storage.db import SessionFactory, get_session


UPDATABLE_FIELDS = {
    "title",
    "category",
    "tags",
    "day",
    "completed",
    "is_from_calendar",
    "calendar_event_id",
    "event_end_time",
}


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise PersistenceError(f"{action} failed: {exc}") from exc


class TaskRepository:
    def __init__(self, session_factory: SessionFactory = get_session):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, user_id: str, task_id: int) -> Optional[Task]:
        with store_errors("Task read"), self._session() as session:
            task = session.get(Task, task_id)
            if task is None or task.user_id != user_id:
                return None
            return task

    def list_for_user(self, user_id: str, day: Optional[date] = None) -> List[Task]:
        """Tasks ordered by day ascending, newest first within a day."""

        with store_errors("Task query"), self._session() as session:
            stmt = select(Task).where(Task.user_id == user_id)
            if day is not None:
                stmt = stmt.where(Task.day == day)
            stmt = stmt.order_by(Task.day.asc(), Task.created_at.desc(), Task.id.desc())
            return list(session.exec(stmt))

    def create(self, user_id: str, **fields) -> Task:
        with store_errors("Task create"), self._session() as session:
            task = Task(user_id=user_id, **fields)
            session.add(task)
            session.commit()
            session.refresh(task)
            return task

    def update(self, user_id: str, task_id: int, **fields) -> Task:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")
        with store_errors("Task update"), self._session() as session:
            obj = session.get(Task, task_id)
            if obj is None or obj.user_id != user_id:
                raise PersistenceError(f"Task {task_id} not found")
            for key, value in fields.items():
                setattr(obj, key, value)
            session.add(obj)
            session.commit()
            session.refresh(obj)
            return obj

    def toggle(self, user_id: str, task_id: int) -> Task:
        task = self.get(user_id, task_id)
        if task is None:
            raise PersistenceError(f"Task {task_id} not found")
        return self.update(user_id, task_id, completed=not task.completed)

    def delete(self, user_id: str, task_id: int) -> None:
        with store_errors("Task delete"), self._session() as session:
            obj = session.get(Task, task_id)
            if obj is None or obj.user_id != user_id:
                raise PersistenceError(f"Task {task_id} not found")
            session.delete(obj)
            session.commit()

    def clear_user(self, user_id: str) -> int:
        with store_errors("Task reset"), self._session() as session:
            rows = list(session.exec(select(Task).where(Task.user_id == user_id)))
            for row in rows:
                session.delete(row)
            session.commit()
            return len(rows)


__all__ = ["TaskRepository", "store_errors"]

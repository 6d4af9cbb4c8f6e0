from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from core.errors import MissionControlError
from services.task_repository import TaskRepository
from utils.datetime_utils import ReferenceClock
from utils.logs import ensure_logger


@dataclass
class RolloverResult:
    rolled: int = 0
    failed: int = 0


class RolloverService:
    """Moves incomplete tasks dated before today onto today."""

    def __init__(self, tasks: TaskRepository, clock: ReferenceClock, *, log_path: Optional[Path] = None):
        self.tasks = tasks
        self.clock = clock
        self.logger = ensure_logger("mission_control.rollover", log_path)

    def rollover_incomplete(self, user_id: str) -> RolloverResult:
        today = self.clock.today()
        overdue = [t for t in self.tasks.list_for_user(user_id) if not t.completed and t.day < today]

        result = RolloverResult()
        for task in overdue:
            try:
                self.tasks.update(user_id, task.id, day=today)
            except MissionControlError as exc:
                self.logger.warning("Could not roll over task %s: %s", task.id, exc)
                result.failed += 1
                continue
            result.rolled += 1

        if overdue:
            self.logger.info(
                "Rolled %s overdue tasks to %s for %s (%s failed)",
                result.rolled,
                today.isoformat(),
                user_id,
                result.failed,
            )
        return result


__all__ = ["RolloverResult", "RolloverService"]

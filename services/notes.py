from __future__ import annotations

import logging
from typing import List, Optional

from models.task import Task
from services.ai_parsing import CategoryGenerator, NoteParser, ParsedTask
from services.categories import DEFAULT_CATEGORY, CategoryService
from services.records import RecordRepository
from services.task_repository import TaskRepository
from utils.datetime_utils import ReferenceClock


class NoteService:
    """Turns free-text notes into tasks, with or without the AI parser."""

    def __init__(
        self,
        tasks: TaskRepository,
        records: RecordRepository,
        categories: CategoryService,
        clock: ReferenceClock,
        *,
        parser: Optional[NoteParser] = None,
        generator: Optional[CategoryGenerator] = None,
    ):
        self.tasks = tasks
        self.records = records
        self.categories = categories
        self.clock = clock
        self.parser = parser
        self.generator = generator
        self.logger = logging.getLogger("mission_control.notes")

    @property
    def ai_enabled(self) -> bool:
        return self.parser is not None and self.parser.client.configured

    def add_note(self, user_id: str, note: str) -> List[Task]:
        text = (note or "").strip()
        if not text:
            return []
        today = self.clock.today()

        if self.ai_enabled:
            parsed = self.parser.parse(
                text,
                self.categories.available(user_id),
                self.categories.ai_generated(user_id),
                today,
            )
        else:
            parsed = [ParsedTask(title=text, category=DEFAULT_CATEGORY, day=today)]

        created = [
            self.tasks.create(
                user_id,
                title=p.title,
                category=p.category,
                tags=p.tags,
                day=p.day,
                completed=False,
            )
            for p in parsed
        ]
        self.logger.info("Added %s task(s) from note for %s", len(created), user_id)
        return created

    def refresh_categories(self, user_id: str, *, force: bool = False) -> List[str]:
        """Regenerate AI categories from the user's tasks and goals (once a day)."""

        if self.generator is None or not self.generator.client.configured:
            return self.categories.available(user_id).as_list()

        def generate() -> List[str]:
            all_tasks = self.tasks.list_for_user(user_id)
            goals = self.records.list_goals(user_id)
            return self.generator.generate(
                [t.title for t in all_tasks if t.is_from_calendar],
                [t.title for t in all_tasks if not t.is_from_calendar],
                [{"title": g.title, "description": g.description} for g in goals],
            )

        self.categories.refresh_ai_categories(user_id, generate, force=force)
        return self.categories.available(user_id).as_list()


__all__ = ["NoteService"]

"""Category set merging, custom categories and the daily AI category cache."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from core.settings import BUILTIN_CATEGORIES
from storage.state_store import KeyValueStore
from utils.datetime_utils import ReferenceClock


CUSTOM_CATEGORIES_KEY = "customCategories"
AI_CATEGORIES_KEY = "aiGeneratedCategories"
AI_CATEGORIES_DATE_KEY = "categoriesGeneratedDate"

DEFAULT_CATEGORY = "Other"

logger = logging.getLogger("mission_control.categories")


class CategorySet:
    """Ordered, de-duplicated union of category lists.

    Earlier sources win on ordering: ``CategorySet(custom, ai, builtin)``.
    """

    def __init__(self, *sources: Iterable[str]):
        self._items: List[str] = []
        seen = set()
        for source in sources:
            for name in source or ():
                if not isinstance(name, str):
                    continue
                label = name.strip()
                if label and label not in seen:
                    seen.add(label)
                    self._items.append(label)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def as_list(self) -> List[str]:
        return list(self._items)


def guess_category(note: str, categories: Sequence[str]) -> str:
    """Keyword fallback used when the AI response cannot be used."""

    if not categories:
        return DEFAULT_CATEGORY
    lowered = (note or "").lower()
    for category in categories:
        if category and category.lower() in lowered:
            return category
    return categories[0]


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v.strip()]


class CategoryService:
    def __init__(self, store: KeyValueStore, clock: ReferenceClock):
        self.store = store
        self.clock = clock

    def custom(self, user_id: str) -> List[str]:
        return _string_list(self.store.for_user(user_id).get(CUSTOM_CATEGORIES_KEY, []))

    def add_custom(self, user_id: str, name: str) -> List[str]:
        label = (name or "").strip()
        existing = self.custom(user_id)
        if not label or label in existing:
            return existing
        updated = existing + [label]
        self.store.for_user(user_id).set(CUSTOM_CATEGORIES_KEY, updated)
        return updated

    def ai_generated(self, user_id: str) -> List[str]:
        return _string_list(self.store.for_user(user_id).get(AI_CATEGORIES_KEY, []))

    def generated_on(self, user_id: str) -> Optional[str]:
        return self.store.for_user(user_id).get(AI_CATEGORIES_DATE_KEY)

    def available(self, user_id: str) -> CategorySet:
        return CategorySet(self.custom(user_id), self.ai_generated(user_id), BUILTIN_CATEGORIES)

    def refresh_ai_categories(
        self,
        user_id: str,
        generate: Callable[[], List[str]],
        *,
        force: bool = False,
    ) -> List[str]:
        """Regenerate the AI category cache at most once per canonical day."""

        today = self.clock.today_str()
        if not force and self.generated_on(user_id) == today:
            cached = self.ai_generated(user_id)
            if cached:
                return cached

        categories = _string_list(generate())
        state = self.store.for_user(user_id)
        state.set(AI_CATEGORIES_KEY, categories)
        state.set(AI_CATEGORIES_DATE_KEY, today)
        logger.info("Generated %s categories for %s", len(categories), user_id)
        return categories


__all__ = [
    "AI_CATEGORIES_DATE_KEY",
    "AI_CATEGORIES_KEY",
    "CUSTOM_CATEGORIES_KEY",
    "CategorySet",
    "CategoryService",
    "DEFAULT_CATEGORY",
    "guess_category",
]

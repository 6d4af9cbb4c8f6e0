"""Turning generative-text responses into tasks, categories and reviews.

The provider is asked for bare JSON but frequently wraps it in prose or
markdown fences, so every structured answer goes through
:func:`extract_json_array`. When no usable array is found the callers fall
back to a deterministic result instead of failing.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from core.errors import ParseError, ProviderError
from core.settings import FALLBACK_GENERATED_CATEGORIES
from services.ai_client import GenerativeTextClient
from services.categories import DEFAULT_CATEGORY, guess_category
from services.prompts import (
    generate_categories_prompt,
    parse_note_prompt,
    weekly_analysis_prompt,
)
from utils.datetime_utils import parse_civil_date


MAX_PROMPT_ITEMS = 50
MAX_ARRAY_STARTS = 64
ANALYSIS_FALLBACK = "Unable to generate analysis at this time. Keep up the great work!"

logger = logging.getLogger("mission_control.ai")
_decoder = json.JSONDecoder()


def extract_json_array(text: str) -> List[Any]:
    """Return the first well-formed JSON array embedded in ``text``.

    At most ``MAX_ARRAY_STARTS`` opening brackets are tried, so a reply made
    of thousands of ``[`` costs a bounded number of decode attempts.
    """

    if not text:
        raise ParseError("Empty AI response")
    start = text.find("[")
    attempts = 0
    while start != -1 and attempts < MAX_ARRAY_STARTS:
        attempts += 1
        try:
            value, _ = _decoder.raw_decode(text, start)
        except (json.JSONDecodeError, RecursionError):
            value = None
        if isinstance(value, list):
            return value
        start = text.find("[", start + 1)
    raise ParseError("No valid JSON array found in AI response")


@dataclass
class ParsedTask:
    title: str
    category: str
    day: date
    tags: List[str] = field(default_factory=list)


class NoteParser:
    def __init__(self, client: GenerativeTextClient):
        self.client = client

    def parse(
        self,
        note: str,
        categories: Iterable[str],
        ai_categories: Sequence[str],
        today: date,
    ) -> List[ParsedTask]:
        valid = list(categories)
        text = self.client.generate(parse_note_prompt(note, valid, today))
        try:
            items = extract_json_array(text)
        except ParseError as exc:
            logger.warning("AI parsing error, using fallback: %s", exc)
            return [self.fallback(note, ai_categories, today)]

        parsed = [
            self._sanitize(item, note, valid, ai_categories, today)
            for item in items
            if isinstance(item, dict)
        ]
        if not parsed:
            logger.warning("AI response held no task objects, using fallback")
            return [self.fallback(note, ai_categories, today)]
        return parsed

    @staticmethod
    def fallback(note: str, ai_categories: Sequence[str], today: date) -> ParsedTask:
        return ParsedTask(
            title=note.strip(),
            category=guess_category(note, list(ai_categories)),
            day=today,
        )

    @staticmethod
    def _sanitize(
        item: Dict[str, Any],
        note: str,
        valid: Sequence[str],
        ai_categories: Sequence[str],
        today: date,
    ) -> ParsedTask:
        title = str(item.get("title") or "").strip() or note.strip()
        category = item.get("category")
        if category not in valid:
            category = ai_categories[0] if ai_categories else DEFAULT_CATEGORY
        raw_date = item.get("date")
        day = parse_civil_date(raw_date) if isinstance(raw_date, str) else None
        tags = item.get("tags") or []
        if not isinstance(tags, list):
            tags = []
        return ParsedTask(
            title=title,
            category=category,
            day=day or today,
            tags=[str(t) for t in tags if isinstance(t, (str, int, float))],
        )


class CategoryGenerator:
    def __init__(self, client: GenerativeTextClient):
        self.client = client

    def generate(
        self,
        calendar_titles: Sequence[str],
        task_titles: Sequence[str],
        goals: Sequence[Dict[str, str]],
    ) -> List[str]:
        prompt = generate_categories_prompt(
            list(calendar_titles)[:MAX_PROMPT_ITEMS],
            list(task_titles)[:MAX_PROMPT_ITEMS],
            goals,
        )
        text = self.client.generate(prompt)
        try:
            items = extract_json_array(text)
        except ParseError as exc:
            logger.warning("AI category generation error, using defaults: %s", exc)
            return list(FALLBACK_GENERATED_CATEGORIES)

        categories = [c.strip() for c in items if isinstance(c, str) and c.strip()]
        return categories or list(FALLBACK_GENERATED_CATEGORIES)


class WeeklyAnalyst:
    def __init__(self, client: GenerativeTextClient):
        self.client = client

    def analyze(self, goal_title: str, goal_description: str, completed: Sequence[str]) -> str:
        prompt = weekly_analysis_prompt(goal_title, goal_description, completed)
        try:
            text = self.client.generate(prompt).strip()
        except ProviderError as exc:
            logger.error("AI analysis error: %s", exc)
            return ANALYSIS_FALLBACK
        return text or ANALYSIS_FALLBACK


__all__ = [
    "ANALYSIS_FALLBACK",
    "CategoryGenerator",
    "MAX_ARRAY_STARTS",
    "NoteParser",
    "ParsedTask",
    "WeeklyAnalyst",
    "extract_json_array",
]

"""Prompt templates for the generative-text provider."""
from __future__ import annotations

from datetime import date
from typing import Dict, Sequence


def parse_note_prompt(note: str, categories: Sequence[str], today: date) -> str:
    return f"""You are an AI task parsing assistant. Analyze the task and assign the most relevant category.

Available categories: {", ".join(categories)}

Task Extraction Rules:
1. Understand what the note is about.
2. Assign the MOST RELEVANT category from the available categories above.
3. Prefer specific work categories over generic ones such as Work or Other.
4. Use a company or project name as the category when it is available.
5. Date: if not mentioned, use today ({today.isoformat()}). Resolve "tomorrow", "next week" and similar to YYYY-MM-DD.
6. Return ONLY a valid JSON array, no markdown.

Note: "{note}"

Return format:
[{{"title": "Task title", "category": "MostRelevantCategory", "date": "YYYY-MM-DD"}}]"""


def _numbered(lines: Sequence[str]) -> str:
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines, start=1))


def generate_categories_prompt(
    calendar_titles: Sequence[str],
    task_titles: Sequence[str],
    goals: Sequence[Dict[str, str]],
) -> str:
    goal_lines = [f"{g.get('title', '')} - {g.get('description', '')}" for g in goals]
    return f"""You are an intelligent categorization assistant. Analyze the user's work data and generate 5-10 relevant work categories.

CALENDAR EVENTS:
{_numbered(calendar_titles)}

TASKS:
{_numbered(task_titles)}

GOALS:
{_numbered(goal_lines)}

Rules:
1. Categories should group several tasks but stay meaningful.
2. Use clear category names of 1-2 words.
3. Name work domains, not actions (e.g. "Product", not "Planning").
4. Include company or project names that appear often.
5. Return ONLY a JSON array of category names.

Example output format:
["Product", "Engineering", "Fundraising", "Marketing", "Sales", "Operations"]

Return only the JSON array:"""


def weekly_analysis_prompt(goal_title: str, goal_description: str, completed: Sequence[str]) -> str:
    return f"""You are a productivity coach analyzing weekly progress.

Goal: {goal_title}
Description: {goal_description}

Tasks completed this week:
{_numbered(completed)}

Provide a brief analysis (2-3 sentences) on:
1. Are these tasks aligned with the goal?
2. What's going well?
3. What should be the focus for next week?

Keep it motivating and actionable."""


__all__ = ["generate_categories_prompt", "parse_note_prompt", "weekly_analysis_prompt"]

"""Event payload helpers for Google Calendar -> task reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


def event_bound(payload: Optional[Dict[str, Any]]) -> Optional[str]:
    """Return ``dateTime`` or, for all-day events, ``date`` of a start/end bound."""

    if not payload:
        return None
    value = payload.get("dateTime") or payload.get("date")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    summary: str
    start: Optional[str]
    end: Optional[str]
    description: Optional[str] = None
    html_link: Optional[str] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "CalendarEvent":
        return cls(
            id=str(item.get("id") or ""),
            summary=(item.get("summary") or "").strip(),
            start=event_bound(item.get("start")),
            end=event_bound(item.get("end")),
            description=item.get("description"),
            html_link=item.get("htmlLink"),
        )

    @property
    def has_title(self) -> bool:
        return bool(self.summary)

    @property
    def has_bounds(self) -> bool:
        return bool(self.start and self.end)


__all__ = ["CalendarEvent", "event_bound"]

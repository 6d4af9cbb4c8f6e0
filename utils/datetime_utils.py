"""Utilities for RFC3339 timestamps and the reference-timezone calendar day."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from core.errors import ParseError

UTC = timezone.utc


def parse_rfc3339(s: Optional[str]) -> Optional[datetime]:
    """Parse a RFC3339 string and return a timezone-aware UTC datetime."""

    if not s:
        return None

    value = s.strip()
    if not value:
        return None

    if value.endswith("Z"):
        value = value[:-1] + "+00:00"

    if "." in value:
        head, tail = value.split(".", 1)
        if "+" in tail:
            frac, tz = tail.split("+", 1)
            sign = "+"
        elif "-" in tail:
            frac, tz = tail.split("-", 1)
            sign = "-"
        else:
            frac, tz = tail, "+00:00"
            sign = "+"
        frac = (frac + "000000")[:6]
        value = f"{head}.{frac}{sign}{tz}"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_rfc3339_utc(dt: Optional[Union[datetime, str]]) -> Optional[str]:
    """Convert a datetime (or string) to RFC3339 in UTC with second precision."""

    if dt is None:
        return None
    if isinstance(dt, str):
        dt = parse_rfc3339(dt)
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt.replace(microsecond=0).isoformat().replace("+00:00", "Z")


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_civil_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` into a ``date``; ``None`` for blanks or garbage."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return datetime.strptime(text[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def week_start(day: date) -> date:
    """Monday of the week containing ``day``."""

    return day - timedelta(days=day.weekday())


class ReferenceClock:
    """Answers "what day is it" and "has this passed" in one fixed timezone.

    Every date comparison in the application goes through an instance of this
    class so that a day boundary never depends on the machine's local zone.
    ``now`` may be injected to pin the clock in tests; it must return an
    aware datetime.
    """

    def __init__(
        self,
        tz: Union[str, tzinfo] = "Asia/Kolkata",
        *,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self._now = now or utc_now

    def now(self) -> datetime:
        current = self._now()
        if current.tzinfo is None:
            current = current.replace(tzinfo=UTC)
        return current.astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def today_str(self) -> str:
        return self.today().isoformat()

    def day_bounds(self, day: Optional[date] = None) -> Tuple[datetime, datetime]:
        target = day or self.today()
        start = datetime.combine(target, time.min, tzinfo=self.tz)
        end = datetime.combine(target, time.max, tzinfo=self.tz)
        return start, end

    def to_instant(self, value: Union[str, datetime, date]) -> datetime:
        """Resolve ``value`` to an aware instant.

        Date-only values mean midnight in the reference zone, as do naive
        date-times. Raises :class:`ParseError` for anything unparsable.
        """

        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=self.tz)
            return value
        if isinstance(value, date):
            return datetime.combine(value, time.min, tzinfo=self.tz)
        if not isinstance(value, str) or not value.strip():
            raise ParseError(f"Not a timestamp: {value!r}")

        text = value.strip()
        if len(text) == 10:
            try:
                day = datetime.strptime(text, "%Y-%m-%d").date()
            except ValueError as exc:
                raise ParseError(f"Not a timestamp: {value!r}") from exc
            return datetime.combine(day, time.min, tzinfo=self.tz)

        has_offset = text.endswith("Z") or "+" in text[10:] or "-" in text[10:]
        if has_offset:
            parsed = parse_rfc3339(text)
            if parsed is None:
                raise ParseError(f"Not a timestamp: {value!r}")
            return parsed
        try:
            naive = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ParseError(f"Not a timestamp: {value!r}") from exc
        return naive.replace(tzinfo=self.tz)

    def has_passed(self, value: Union[str, datetime, date]) -> bool:
        return self.to_instant(value) < self.now()


__all__ = [
    "UTC",
    "ReferenceClock",
    "parse_civil_date",
    "parse_rfc3339",
    "to_rfc3339_utc",
    "utc_now",
    "week_start",
]

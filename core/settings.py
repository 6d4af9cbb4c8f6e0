"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import math
import os
import sys

from core.errors import ConfigurationError


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(env or os.environ)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


APP_NAME = "MissionControl"


DATA_DIR = get_default_data_dir(APP_NAME)
SECRETS_DIR = DATA_DIR / "secrets"
LOG_DIR = DATA_DIR / "logs"

DB_PATH = DATA_DIR / "mission_control.db"
STATE_PATH = DATA_DIR / "state.json"
CLIENT_SECRET_PATH = SECRETS_DIR / "client_secret.json"
LOG_PATH = LOG_DIR / "mission_control.log"


def ensure_data_dirs() -> None:
    for _dir in (DATA_DIR, SECRETS_DIR, LOG_DIR):
        _dir.mkdir(parents=True, exist_ok=True)


BUILTIN_CATEGORIES: tuple[str, ...] = (
    "Development",
    "Admin",
    "Health",
    "Learning",
    "Relationships",
    "Sales",
    "Operations",
    "Content",
    "Other",
)

FALLBACK_GENERATED_CATEGORIES: tuple[str, ...] = (
    "Work",
    "Personal",
    "Meetings",
    "Development",
    "Other",
)


@dataclass(frozen=True)
class CalendarSettings:
    reference_timezone: str = "Asia/Kolkata"
    calendar_id: str = "primary"
    category: str = "Work"
    title_prefix: str = "📅 "
    max_results: int = 250
    scopes: tuple[str, ...] = (
        "https://www.googleapis.com/auth/calendar.readonly",
        "https://www.googleapis.com/auth/userinfo.email",
        "openid",
    )


@dataclass(frozen=True)
class AISettings:
    api_key: Optional[str] = None
    model: str = "gemini-pro"
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta/models"
    timeout_sec: float = 30.0

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != "not-configured"


@dataclass(frozen=True)
class AppSettings:
    db_path: Path = DB_PATH
    state_path: Path = STATE_PATH
    client_secret_path: Path = CLIENT_SECRET_PATH
    log_path: Path = LOG_PATH
    calendar: CalendarSettings = field(default_factory=CalendarSettings)
    ai: AISettings = field(default_factory=AISettings)


def _valid_timezone(name: str) -> str:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"MISSION_CONTROL_TZ is not a known timezone: {name!r}") from exc
    return name


def _valid_timeout(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"MISSION_CONTROL_AI_TIMEOUT must be a number of seconds, got {raw!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"MISSION_CONTROL_AI_TIMEOUT must be positive, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Build :class:`AppSettings` with overrides taken from ``env``."""

    environ = dict(os.environ if env is None else env)
    calendar = CalendarSettings()
    ai = AISettings()

    tz_name = environ.get("MISSION_CONTROL_TZ")
    if tz_name and tz_name.strip():
        calendar = replace(calendar, reference_timezone=_valid_timezone(tz_name.strip()))
    category = environ.get("MISSION_CONTROL_CALENDAR_CATEGORY")
    if category and category.strip():
        calendar = replace(calendar, category=category.strip())

    api_key = (environ.get("GOOGLE_API_KEY") or "").strip() or None
    ai = replace(ai, api_key=api_key)
    model = environ.get("MISSION_CONTROL_AI_MODEL")
    if model:
        ai = replace(ai, model=model.strip())
    timeout = environ.get("MISSION_CONTROL_AI_TIMEOUT")
    if timeout and timeout.strip():
        ai = replace(ai, timeout_sec=_valid_timeout(timeout.strip()))

    return AppSettings(calendar=calendar, ai=ai)


__all__ = [
    "APP_NAME",
    "DATA_DIR",
    "SECRETS_DIR",
    "LOG_DIR",
    "DB_PATH",
    "STATE_PATH",
    "CLIENT_SECRET_PATH",
    "LOG_PATH",
    "BUILTIN_CATEGORIES",
    "FALLBACK_GENERATED_CATEGORIES",
    "AISettings",
    "AppSettings",
    "CalendarSettings",
    "ensure_data_dirs",
    "get_default_data_dir",
    "load_settings",
]

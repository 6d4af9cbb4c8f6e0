from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from core.errors import ConfigurationError, ProviderError
from services.google_sync import CalendarEvent


def _to_rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        raise ValueError("calendar window bounds must be timezone-aware")
    return dt.isoformat()


def _http_status(exc: HttpError) -> Optional[int]:
    status = getattr(getattr(exc, "resp", None), "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def build_calendar_service(access_token: str) -> Any:
    creds = Credentials(token=access_token)
    return build("calendar", "v3", credentials=creds, cache_discovery=False)


class GoogleCalendar:
    """Read access to one account's calendar, authorised by a bearer token."""

    def __init__(self, access_token: str, calendar_id: str = "primary", *, service: Any = None, max_results: int = 250):
        if not access_token and service is None:
            raise ConfigurationError("Calendar access token is missing")
        self.access_token = access_token
        self.calendar_id = calendar_id
        self.max_results = max_results
        self.service = service

    def _ensure_service(self) -> Any:
        if self.service is None:
            self.service = build_calendar_service(self.access_token)
        return self.service

    def list_raw(self, start_dt: datetime, end_dt: datetime) -> List[Dict[str, Any]]:
        service = self._ensure_service()
        params = dict(
            calendarId=self.calendar_id,
            timeMin=_to_rfc3339(start_dt),
            timeMax=_to_rfc3339(end_dt),
            singleEvents=True,
            orderBy="startTime",
            maxResults=self.max_results,
        )
        items: List[Dict[str, Any]] = []
        try:
            while True:
                response = service.events().list(**params).execute()
                items.extend(response.get("items", []))
                page_token = response.get("nextPageToken")
                if not page_token:
                    break
                params["pageToken"] = page_token
        except HttpError as exc:
            status = _http_status(exc)
            raise ProviderError(f"Failed to fetch calendar events: HTTP {status}", status=status) from exc
        except (GoogleAuthError, OSError) as exc:
            raise ProviderError(f"Failed to fetch calendar events: {exc}") from exc
        return items

    def list_range(self, start_dt: datetime, end_dt: datetime) -> List[CalendarEvent]:
        return [CalendarEvent.from_api(item) for item in self.list_raw(start_dt, end_dt)]


__all__ = ["GoogleCalendar", "build_calendar_service"]

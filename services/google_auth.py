# mission_control/services/google_auth.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from core.errors import ConfigurationError, ProviderError
from core.settings import CLIENT_SECRET_PATH, CalendarSettings
from services.accounts import ConnectedAccount


class GoogleAuth:
    """Runs the installed-app OAuth consent flow for one more calendar account."""

    def __init__(
        self,
        secrets_path: str | Path = CLIENT_SECRET_PATH,
        scopes: Optional[Iterable[str]] = None,
    ):
        self.secrets_path = Path(secrets_path)
        self.scopes = list(scopes or CalendarSettings().scopes)
        self.logger = logging.getLogger("mission_control.auth")

    def connect_account(self) -> ConnectedAccount:
        if not self.secrets_path.exists():
            raise ConfigurationError(
                f"OAuth client secret not found at {self.secrets_path}. "
                "Create a Desktop OAuth client in Google Cloud and download its JSON."
            )
        flow = InstalledAppFlow.from_client_secrets_file(str(self.secrets_path), self.scopes)
        self.logger.info("Running OAuth consent flow (local server)")
        creds = flow.run_local_server(port=0, prompt="consent", include_granted_scopes="true")
        if not creds or not creds.token:
            raise ProviderError("OAuth flow returned no access token")

        email = self._fetch_email(creds)
        self._log_active_scopes(creds.scopes)
        return ConnectedAccount(email=email, access_token=creds.token)

    # ----- helpers -----
    def _fetch_email(self, creds) -> str:
        try:
            service = build("oauth2", "v2", credentials=creds, cache_discovery=False)
            info = service.userinfo().get().execute()
        except HttpError as exc:
            status = getattr(getattr(exc, "resp", None), "status", None)
            raise ProviderError("Failed to read account details", status=status) from exc
        email = (info or {}).get("email")
        if not email:
            raise ProviderError("Account details did not include an email")
        return str(email)

    def _log_active_scopes(self, scopes: Iterable[str] | None) -> None:
        scopes_list = sorted(set(scopes or []))
        self.logger.info("Active scopes: %s", ", ".join(scopes_list) if scopes_list else "-")


__all__ = ["GoogleAuth"]

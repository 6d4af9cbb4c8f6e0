"""Connected calendar accounts, persisted in the local state store."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from storage.state_store import KeyValueStore
from utils.datetime_utils import to_rfc3339_utc, utc_now


CONNECTIONS_KEY = "connectedCalendars"

logger = logging.getLogger("mission_control.accounts")


@dataclass(frozen=True)
class ConnectedAccount:
    email: str
    access_token: str
    connected_at: str = field(default_factory=lambda: to_rfc3339_utc(utc_now()))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConnectedAccount":
        return cls(
            email=str(data.get("email") or ""),
            access_token=str(data.get("accessToken") or data.get("access_token") or ""),
            connected_at=str(data.get("connectedAt") or data.get("connected_at") or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        raw = asdict(self)
        return {
            "email": raw["email"],
            "accessToken": raw["access_token"],
            "connectedAt": raw["connected_at"],
        }


class AccountRegistry:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def list(self, user_id: str) -> List[ConnectedAccount]:
        raw = self.store.for_user(user_id).get(CONNECTIONS_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Ignoring malformed calendar connections for %s", user_id)
            return []
        return [ConnectedAccount.from_dict(item) for item in raw if isinstance(item, dict)]

    def add(self, user_id: str, account: ConnectedAccount) -> List[ConnectedAccount]:
        accounts = self.list(user_id)
        if any(a.email == account.email for a in accounts):
            raise ValueError(f"Calendar account {account.email} is already connected")
        accounts.append(account)
        self._save(user_id, accounts)
        logger.info("Connected calendar account %s for %s", account.email, user_id)
        return accounts

    def remove(self, user_id: str, email: str) -> List[ConnectedAccount]:
        accounts = [a for a in self.list(user_id) if a.email != email]
        self._save(user_id, accounts)
        logger.info("Disconnected calendar account %s for %s", email, user_id)
        return accounts

    def _save(self, user_id: str, accounts: List[ConnectedAccount]) -> None:
        self.store.for_user(user_id).set(CONNECTIONS_KEY, [a.to_dict() for a in accounts])


__all__ = ["AccountRegistry", "CONNECTIONS_KEY", "ConnectedAccount"]

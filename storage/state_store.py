"""JSON-file key/value store for per-user local state."""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from core.errors import PersistenceError
from core.settings import STATE_PATH


logger = logging.getLogger("mission_control.state")

_MISSING = object()


class KeyValueStore:
    """Flat ``key -> JSON value`` mapping persisted to a single file."""

    def __init__(self, path: Path | str | None = None):
        self.path = Path(path or STATE_PATH)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # generic helpers
    def _load(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError:
            logger.warning("State file %s is corrupt; starting empty", self.path)
            return {}
        if isinstance(data, dict):
            return data
        return {}

    def _save(self, data: Dict[str, Any]) -> None:
        tmp = self.path.with_suffix(".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, ensure_ascii=False, sort_keys=True), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            raise PersistenceError(f"Cannot write state file {self.path}: {exc}") from exc
        finally:
            if tmp.exists():
                try:
                    tmp.unlink()
                except OSError:
                    pass

    # ------------------------------------------------------------------
    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                data.pop(key)
                self._save(data)

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._load()

    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._load().keys())

    def for_user(self, user_id: str) -> "UserState":
        return UserState(self, user_id)


class UserState:
    """View of :class:`KeyValueStore` whose keys are suffixed with a user id.

    Reading a key that does not exist yet under the user's namespace moves
    the legacy global value (if any) into it. The legacy key is removed
    afterwards so that it cannot be claimed by another user of the device.
    """

    def __init__(self, store: KeyValueStore, user_id: str):
        if not user_id:
            raise ValueError("user_id is required")
        self.store = store
        self.user_id = user_id

    def key(self, name: str) -> str:
        return f"{name}_{self.user_id}"

    def get(self, name: str, default: Any = None) -> Any:
        with self.store._lock:
            value = self.store.get(self.key(name), _MISSING)
            if value is not _MISSING:
                return value
            legacy = self.store.get(name, _MISSING)
            if legacy is _MISSING:
                return default
            logger.info("Migrating %s to user-specific storage for %s", name, self.user_id)
            self.store.set(self.key(name), legacy)
            self.store.delete(name)
            return legacy

    def set(self, name: str, value: Any) -> None:
        self.store.set(self.key(name), value)

    def delete(self, name: str) -> None:
        self.store.delete(self.key(name))

    def clear(self, names: Optional[Iterable[str]] = None) -> None:
        with self.store._lock:
            suffix = f"_{self.user_id}"
            targets = [self.key(n) for n in names] if names is not None else [
                k for k in self.store.keys() if k.endswith(suffix)
            ]
            for key in targets:
                self.store.delete(key)


__all__ = ["KeyValueStore", "UserState"]

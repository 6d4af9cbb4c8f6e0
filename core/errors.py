"""Exception hierarchy shared by the services."""
from __future__ import annotations

from typing import Optional


class MissionControlError(Exception):
    """Base class for application errors."""


class ConfigurationError(MissionControlError):
    """A required credential or setting is missing."""


class ProviderError(MissionControlError):
    """An external provider (calendar, generative text) answered with a failure."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class PersistenceError(MissionControlError):
    """A document store operation failed."""


class ParseError(MissionControlError):
    """Input did not have the expected structure."""


__all__ = [
    "ConfigurationError",
    "MissionControlError",
    "ParseError",
    "PersistenceError",
    "ProviderError",
]

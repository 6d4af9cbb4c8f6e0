from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from core.settings import LOG_PATH


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def ensure_logger(name: str, path: Optional[Path] = None) -> logging.Logger:
    """Return ``name`` with a rotating file handler attached exactly once."""

    logger = logging.getLogger(name)
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        target = Path(path or LOG_PATH)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            handler = RotatingFileHandler(target, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        except OSError:
            # read-only data dir: fall back to whatever the root logger does
            handler = None
        if handler is not None:
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    return logger


__all__ = ["LOG_FORMAT", "ensure_logger"]

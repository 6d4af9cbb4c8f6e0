# mission_control/storage/db.py
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from core.settings import DB_PATH

# Ensure SQLModel metadata is populated
import models.task  # noqa: F401
import models.goal  # noqa: F401
import models.entries  # noqa: F401
from storage import migrations


SessionFactory = Callable[[], Session]

_engine: Optional[Engine] = None


def create_store_engine(db_path: Path | str = DB_PATH) -> Engine:
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        f"sqlite:///{path.as_posix()}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


def init_db(engine: Optional[Engine] = None) -> Engine:
    actual = engine or get_engine()
    SQLModel.metadata.create_all(actual)
    migrations.run_all(actual)
    return actual


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_store_engine(DB_PATH)
    return _engine


def make_session_factory(engine: Engine) -> SessionFactory:
    def factory() -> Session:
        return Session(engine)

    return factory


def get_session() -> Session:
    return Session(get_engine())


__all__ = [
    "SessionFactory",
    "create_store_engine",
    "get_engine",
    "get_session",
    "init_db",
    "make_session_factory",
]

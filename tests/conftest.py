from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.settings import AppSettings
from services.task_repository import TaskRepository
from storage.db import init_db
from storage.state_store import KeyValueStore
from utils.datetime_utils import ReferenceClock


class FakeNow:
    """Settable clock source; starts at 2024-01-03 10:00 IST."""

    def __init__(self, value=None):
        self.value = value or datetime(2024, 1, 3, 4, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.value


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture()
def session_factory(engine):
    def factory():
        return Session(engine)

    return factory


@pytest.fixture()
def fake_now():
    return FakeNow()


@pytest.fixture()
def clock(fake_now):
    return ReferenceClock("Asia/Kolkata", now=fake_now)


@pytest.fixture()
def settings(tmp_path):
    return AppSettings(
        db_path=tmp_path / "test.db",
        state_path=tmp_path / "state.json",
        log_path=tmp_path / "logs" / "test.log",
    )


@pytest.fixture()
def store(settings):
    return KeyValueStore(settings.state_path)


@pytest.fixture()
def tasks(session_factory):
    return TaskRepository(session_factory)

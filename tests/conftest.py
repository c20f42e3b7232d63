"""
Test configuration: repo root on sys.path, in-memory storage and a
hand-driven clock for the services.
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from core.timer_engine import TimerEngine  # noqa: E402
from domain.models import Settings  # noqa: E402
from services.group_service import GroupService, GroupTransport  # noqa: E402
from services.schedule_service import ScheduleService  # noqa: E402
from services.stats_service import StatsService  # noqa: E402
from services.task_service import TaskService  # noqa: E402
from services.timer_service import TimerService  # noqa: E402
from storage.db import Database  # noqa: E402
from storage.repos import StateStore  # noqa: E402


class FakeTransport(GroupTransport):
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []
        self.closed = False

    def create(self, name):
        if self.fail:
            raise ConnectionError("offline")
        return "room-1"

    def join(self, session_id, name):
        if self.fail:
            raise ConnectionError("offline")

    def send(self, payload):
        self.sent.append(payload)

    def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def failing_transport():
    return FakeTransport(fail=True)


@pytest.fixture
def t0():
    return datetime(2024, 5, 6, 9, 0, 0)


@pytest.fixture
def clock(t0):
    return FakeClock(t0)


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def engine(settings):
    return TimerEngine(settings)


@pytest.fixture
def db():
    database = Database(":memory:")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def store(db):
    return StateStore(db)


@pytest.fixture
def task_service(store):
    return TaskService(store)


@pytest.fixture
def stats_service(store):
    return StatsService(store)


@pytest.fixture
def schedule_service(store, task_service):
    return ScheduleService(store, task_service)


@pytest.fixture
def timer_service(store, task_service, stats_service, schedule_service, clock):
    return TimerService(
        store, task_service, stats_service, schedule_service, GroupService(), clock=clock
    )

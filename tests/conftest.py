"""Shared fixtures for notifsync tests."""

import pytest
import pytest_asyncio

from notifsync.config import Config, ScanConfig
from notifsync.id_clock import IdClock
from notifsync.services import NotificationService, NotificationStore, open_database
from notifsync.services.lifecycle import LifecyclePolicy


@pytest_asyncio.fixture
async def db(tmp_path):
    """Database service on a temporary SQLite file."""
    service = await open_database(tmp_path / "notifications.db")
    yield service
    await service.close()


@pytest.fixture
def store(db):
    return NotificationStore(db)


@pytest.fixture
def id_clock():
    return IdClock.from_config(Config().id_clock)


@pytest.fixture
def policy(store, id_clock):
    return LifecyclePolicy(store, id_clock, ScanConfig())


@pytest.fixture
def strict_policy(store, id_clock):
    return LifecyclePolicy(store, id_clock, ScanConfig(strict_transitions=True))


@pytest.fixture
def service(db):
    return NotificationService(db, Config())

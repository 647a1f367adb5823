"""
Global pytest fixtures for the Minify test suite.

Responsibilities:
    - Provide a frozen, advanceable clock so lifecycle math is deterministic
    - Provide isolated in-memory Storage and the manager layer wired to it
    - Provide a fresh FastAPI TestClient via the app factory for integration tests

Why an app factory?
    `create_app()` builds new storage and a new user registry per call, so each
    test gets clean state.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from main import create_app
from minify.manager.cascade import AccountCascade
from minify.manager.lifecycle import LifecycleEngine
from minify.manager.link_manager import LinkManager
from minify.manager.resolution import ResolutionService
from minify.manager.slug_allocator import SlugAllocator
from minify.models import Account
from minify.storage.storage import Storage

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now += timedelta(**delta)
        return self.now


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def storage() -> Storage:
    """Fresh in-memory Storage backend."""
    return Storage()


@pytest.fixture
def owner(storage: Storage) -> Account:
    """An active account called 'alice' already present in storage."""
    return storage.insert_account(Account(id="alice"))


@pytest.fixture
def lifecycle() -> LifecycleEngine:
    return LifecycleEngine(extend_days=7, expiring_soon_days=3, deletion_grace_days=30)


@pytest.fixture
def allocator(storage: Storage) -> SlugAllocator:
    return SlugAllocator(storage, max_attempts=10, length=6)


@pytest.fixture
def manager(storage, allocator, lifecycle, clock) -> LinkManager:
    return LinkManager(storage, allocator=allocator, lifecycle=lifecycle, clock=clock, ttl_days=30)


@pytest.fixture
def cascade(storage, lifecycle, clock) -> AccountCascade:
    return AccountCascade(storage, lifecycle=lifecycle, clock=clock)


@pytest.fixture
def resolver(storage) -> ResolutionService:
    return ResolutionService(storage)


@pytest.fixture
def client(storage, clock) -> TestClient:
    """
    Fresh TestClient over an app sharing the `storage` and `clock` fixtures,
    so tests can inspect or tweak state directly.
    """
    return TestClient(create_app(storage=storage, clock=clock))


@pytest.fixture
def alice(client) -> tuple:
    """Register 'alice' through the API and return the Basic-auth credentials."""
    resp = client.post("/accounts", json={"username": "alice", "password": "wonderland"})
    assert resp.status_code == 201
    return ("alice", "wonderland")

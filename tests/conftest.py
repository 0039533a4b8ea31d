"""
Pytest configuration and fixtures for the raid loot tracker tests.
"""

import pytest

from helpers import MAIN_LINK, full_bis
from models.enums import PermissionRole, SpecType
from services.container import LootTracker
from services.memory_store import InMemoryStore
from utils.security import PinHasher


@pytest.fixture(autouse=True)
def fast_pin_hashing(monkeypatch):
    """Keep PBKDF2 cheap so tests creating many members stay fast."""
    monkeypatch.setattr(PinHasher, "ITERATIONS", 1_000)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def tracker(store):
    """A tracker on the in-memory backend."""
    tracker = LootTracker(store, session_secret="test-session-secret")
    yield tracker
    tracker.close()


@pytest.fixture
def events(tracker):
    """Every event published by the tracker; call ``tracker.notifier.drain()`` first."""
    received = []
    tracker.notifier.subscribe(received.append)
    return received


@pytest.fixture
def alice(tracker):
    """A member with a full main-spec BiS."""
    member = tracker.members.create("Alice")
    return tracker.members.set_bis_link(member.member_id, SpecType.MAIN_SPEC, MAIN_LINK, full_bis())


@pytest.fixture
def bob(tracker):
    """A second member with the same main-spec BiS."""
    member = tracker.members.create("Bob")
    return tracker.members.set_bis_link(member.member_id, SpecType.MAIN_SPEC, MAIN_LINK, full_bis())


@pytest.fixture
def admin(tracker):
    member = tracker.members.create("Sandro")
    return tracker.members.set_permission(member.member_id, PermissionRole.ADMINISTRATOR)


@pytest.fixture
def manager(tracker):
    member = tracker.members.create("Marta")
    return tracker.members.set_permission(member.member_id, PermissionRole.MANAGER)


@pytest.fixture
def week(tracker):
    """Week 1, current."""
    return tracker.weeks.start_next()

"""
Services package for business logic and external integrations.

This package contains the loot engine (members, acquisition state, weeks,
assignments, eligibility, notifications, distribution), the storage
backends, PIN authentication and the xivgear import client.
"""

from .container import LootTracker, build_tracker, get_tracker
from .dynamodb import LootTrackerTable
from .memory_store import InMemoryStore

__all__ = [
    "InMemoryStore",
    "LootTracker",
    "LootTrackerTable",
    "build_tracker",
    "get_tracker",
]

"""
Composition root.

Wires the storage backend, engine services and collaborators once per
process. Lambda handlers call ``get_tracker()``; tests build their own with
``build_tracker``.
"""

import logging
from functools import lru_cache
from typing import Optional

from services.acquisition import AcquisitionStateStore
from services.assignments import AssignmentLedger
from services.auth import PinAuthenticator
from services.dynamodb import LootTrackerTable
from services.eligibility import EligibilityResolver
from services.initialization import seed_default_roster
from services.loot import LootDistributionService
from services.members import MemberDirectory
from services.memory_store import InMemoryStore
from services.notifier import ChangeNotifier
from services.parameter_store import ParameterStoreConfig, config
from services.repositories import LootStore
from services.weeks import WeekLedger
from services.xivgear import XivGearClient

logger = logging.getLogger(__name__)


class LootTracker:
    """Every service of one tracker instance, sharing a store and a notifier."""

    def __init__(
        self,
        store: LootStore,
        session_secret: str,
        session_ttl_hours: int = 24,
        xivgear: Optional[XivGearClient] = None,
        notifier: Optional[ChangeNotifier] = None,
    ):
        self.store = store
        self.notifier = notifier or ChangeNotifier()
        self.members = MemberDirectory(store)
        self.acquisitions = AcquisitionStateStore(store, publish=self.notifier.publish)
        self.weeks = WeekLedger(store, publish=self.notifier.publish)
        self.assignments = AssignmentLedger(store)
        self.eligibility = EligibilityResolver(store, self.acquisitions)
        self.loot = LootDistributionService(
            members=self.members,
            acquisitions=self.acquisitions,
            weeks=self.weeks,
            assignments=self.assignments,
            eligibility=self.eligibility,
            notifier=self.notifier,
        )
        self.auth = PinAuthenticator(self.members, session_secret, session_ttl_hours)
        self.xivgear = xivgear or XivGearClient()

    def close(self) -> None:
        self.notifier.close()


def create_store(settings: ParameterStoreConfig) -> LootStore:
    backend = settings.storage_backend
    if backend == "dynamodb":
        return LootTrackerTable(table_name=settings.table_name)
    if backend == "memory":
        return InMemoryStore()
    raise ValueError(f"Unknown storage backend: {backend}")


def build_tracker(
    settings: ParameterStoreConfig, store: Optional[LootStore] = None, seed: bool = True
) -> LootTracker:
    tracker = LootTracker(
        store=store or create_store(settings),
        session_secret=settings.session_secret,
        session_ttl_hours=settings.session_ttl_hours,
        xivgear=XivGearClient(settings.xivgear_api_url),
    )
    if seed:
        seed_default_roster(tracker.members, settings.default_members, settings.bootstrap_admin)
    logger.info("Loot tracker ready", extra={"storage_backend": settings.storage_backend})
    return tracker


@lru_cache(maxsize=1)
def get_tracker() -> LootTracker:
    """Process-wide tracker, built on first use and reused across warm starts."""
    return build_tracker(config)

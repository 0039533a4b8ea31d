"""
Week ledger: numbered raid weeks and the single current-week pointer.
"""

import logging
from typing import Callable, List, Optional

from models.enums import EventKind
from models.events import ChangeEvent
from models.loot import LootAssignment
from models.weeks import Week
from services.repositories import LootStore
from utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class WeekLedger:
    def __init__(
        self,
        store: LootStore,
        publish: Optional[Callable[[ChangeEvent], None]] = None,
    ):
        self.store = store
        self.publish = publish

    def list(self) -> List[Week]:
        """All weeks, newest first."""
        return sorted(self.store.list_weeks(), key=lambda w: w.week_number, reverse=True)

    def get(self, week_number: int) -> Week:
        week = self.store.get_week(week_number)
        if week is None:
            raise NotFoundError("Week", week_number)
        return week

    def get_current(self) -> Optional[Week]:
        current = self.store.get_current_week_number()
        if current is None:
            return None
        return self.store.get_week(current)

    def create(self, week_number: int) -> Week:
        """
        Add a week. It does not become current.

        Raises:
            ValidationError: Week number below 1
            ConflictError: Week number already exists
        """
        if isinstance(week_number, bool) or not isinstance(week_number, int) or week_number < 1:
            raise ValidationError(
                "Week number must be a positive integer", {"week_number": week_number}
            )
        week = self.store.create_week(Week(week_number=week_number))
        logger.info("Created week", extra={"week_number": week_number})
        return week

    def start_next(self) -> Week:
        """Create the week after the highest existing one and make it current."""
        numbers = [w.week_number for w in self.store.list_weeks()]
        week = self.create(max(numbers, default=0) + 1)
        self.set_current(week.week_number)
        return week.model_copy(update={"is_current": True})

    def set_current(self, week_number: int) -> Week:
        self.store.set_current_week(week_number)
        logger.info("Set current week", extra={"week_number": week_number})
        return self.get(week_number)

    def delete(
        self,
        week_number: int,
        on_removed: Optional[Callable[[LootAssignment], None]] = None,
    ) -> List[LootAssignment]:
        """
        Delete a week and every assignment recorded in it.

        ``on_removed`` runs for each removed assignment before its
        ``AssignmentRemoved`` event is published. If the week was current, no
        week is current afterwards.

        Returns:
            The removed assignments
        """
        # Week goes first; inserts check it atomically, so none lands after the cascade
        self.store.delete_week(week_number)
        removed = self.store.delete_assignments_by_week(week_number)
        if on_removed is not None:
            for assignment in removed:
                on_removed(assignment)

        logger.info(
            "Deleted week",
            extra={"week_number": week_number, "removed_assignments": len(removed)},
        )
        if self.publish is not None:
            for assignment in removed:
                self.publish(
                    ChangeEvent.for_assignment(EventKind.ASSIGNMENT_REMOVED, assignment)
                )
        return removed

"""
Assignment ledger: who received which drop, on which floor, in which week.

At most one assignment exists per (floor, week, drop). The check and the
insert run inside one critical section keyed by (floor, week); the storage
backend re-checks the drop and the week on insert, so two processes sharing a
DynamoDB table cannot both succeed, and an insert racing a week deletion is
either cascaded or rejected.
"""

import logging
from typing import List, Optional

from models.enums import MAX_FLOOR, MIN_FLOOR, GearSlot
from models.loot import DropDescriptor, LootAssignment
from services.repositories import LootStore
from utils.errors import ConflictError, NotFoundError, ValidationError
from utils.locks import KeyedLocks

logger = logging.getLogger(__name__)


def validate_floor(floor_number: int) -> None:
    if isinstance(floor_number, bool) or not isinstance(floor_number, int):
        raise ValidationError("Floor number must be an integer", {"floor_number": floor_number})
    if not MIN_FLOOR <= floor_number <= MAX_FLOOR:
        raise ValidationError(
            f"Floor number must be between {MIN_FLOOR} and {MAX_FLOOR}",
            {"floor_number": floor_number},
        )


def build_descriptor(
    slot: Optional[GearSlot], is_upgrade_material: bool, is_armor_material: bool
) -> DropDescriptor:
    """Build a normalized drop descriptor, raising ValidationError when malformed."""
    try:
        descriptor = DropDescriptor(
            slot=slot,
            is_upgrade_material=is_upgrade_material,
            is_armor_material=is_armor_material,
        )
    except ValueError as e:
        raise ValidationError(f"Invalid drop: {e}")
    return descriptor.normalized()


class AssignmentLedger:
    def __init__(self, store: LootStore, locks: Optional[KeyedLocks] = None):
        self.store = store
        self.locks = locks or KeyedLocks()

    def list(self) -> List[LootAssignment]:
        return self.store.list_assignments()

    def list_by_week(self, week_number: int) -> List[LootAssignment]:
        return sorted(
            self.store.list_assignments_by_week(week_number),
            key=lambda a: (a.floor_number, a.assigned_at),
        )

    def list_by_floor_and_week(self, floor_number: int, week_number: int) -> List[LootAssignment]:
        return [a for a in self.list_by_week(week_number) if a.floor_number == floor_number]

    def get(self, assignment_id: str) -> LootAssignment:
        assignment = self.store.get_assignment(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    def find_conflict(
        self,
        floor_number: int,
        week_number: int,
        slot: Optional[GearSlot],
        is_upgrade_material: bool,
        is_armor_material: bool,
    ) -> Optional[LootAssignment]:
        """The assignment already holding this drop, if any. A missing slot matches a missing slot."""
        drop = build_descriptor(slot, is_upgrade_material, is_armor_material)
        return self.store.find_assignment(floor_number, week_number, drop)

    def create(self, assignment: LootAssignment) -> LootAssignment:
        """
        Record an assignment.

        Raises:
            ValidationError: Bad floor or malformed drop
            NotFoundError: The week does not exist
            ConflictError: The drop is already assigned; carries the holder's id
        """
        assignment = self._normalized(assignment)
        if self.store.get_week(assignment.week_number) is None:
            raise NotFoundError("Week", assignment.week_number)

        with self.locks.hold((assignment.floor_number, assignment.week_number)):
            self._check_free(assignment)
            stored = self.store.insert_assignment(assignment)

        logger.info(
            "Created assignment",
            extra={
                "assignment_id": stored.assignment_id,
                "member_id": stored.member_id,
                "floor_number": stored.floor_number,
                "week_number": stored.week_number,
                "drop": stored.drop.label(),
                "spec_type": stored.spec_type.value,
            },
        )
        return stored

    def update(self, assignment: LootAssignment) -> LootAssignment:
        """
        Overwrite an existing assignment.

        Uniqueness is re-checked when the floor, week or drop moved.
        """
        assignment = self._normalized(assignment)
        previous = self.get(assignment.assignment_id)
        moved = previous.drop_key() != assignment.drop_key()

        if moved and self.store.get_week(assignment.week_number) is None:
            raise NotFoundError("Week", assignment.week_number)

        with self.locks.hold((assignment.floor_number, assignment.week_number)):
            if moved:
                self._check_free(assignment)
            return self.store.replace_assignment(previous, assignment)

    def undo(self, assignment_id: str) -> LootAssignment:
        """
        Delete an assignment, freeing its drop.

        Returns:
            The removed record so the caller can reverse the acquisition flag

        Raises:
            NotFoundError: The assignment does not exist or was already undone
        """
        assignment = self.get(assignment_id)
        with self.locks.hold((assignment.floor_number, assignment.week_number)):
            self.store.delete_assignment(assignment)
        logger.info("Undid assignment", extra={"assignment_id": assignment_id})
        return assignment

    def _normalized(self, assignment: LootAssignment) -> LootAssignment:
        validate_floor(assignment.floor_number)
        drop = build_descriptor(
            assignment.slot, assignment.is_upgrade_material, assignment.is_armor_material
        )
        return assignment.model_copy(update={"slot": drop.slot})

    def _check_free(self, assignment: LootAssignment) -> None:
        holder = self.store.find_assignment(
            assignment.floor_number, assignment.week_number, assignment.drop
        )
        if holder is not None and holder.assignment_id != assignment.assignment_id:
            raise ConflictError(
                f"The {assignment.drop.label()} on floor {assignment.floor_number} "
                f"has already been assigned in week {assignment.week_number}",
                conflicting_id=holder.assignment_id,
            )

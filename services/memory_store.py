"""
In-process storage backend.

Used for local development and tests. Every public method holds the lock
guarding the collection it touches, so each call is atomic with respect to
concurrent callers. Returned models are copies; mutating them never changes
stored state.
"""

import threading
from typing import Dict, List, Optional, Tuple

from models.acquisition import AcquisitionKey, AcquisitionState
from models.enums import GearSlot, SpecType
from models.loot import DropDescriptor, LootAssignment
from models.members import MemberBase
from models.weeks import Week
from utils.errors import ConflictError, NotFoundError
from utils.locks import KeyedLocks


class InMemoryStore:
    """Dictionary-backed implementation of ``services.repositories.LootStore``."""

    def __init__(self):
        self._members: Dict[str, MemberBase] = {}
        self._acquisitions: Dict[AcquisitionKey, AcquisitionState] = {}
        self._weeks: Dict[int, Week] = {}
        self._current_week: Optional[int] = None
        self._assignments: Dict[str, LootAssignment] = {}

        self._members_lock = threading.RLock()
        self._weeks_lock = threading.RLock()
        self._assignments_lock = threading.RLock()
        # Acquisition rows are independent per member
        self._acquisition_locks = KeyedLocks()

    # Members

    def list_members(self) -> List[MemberBase]:
        with self._members_lock:
            return [m.model_copy(deep=True) for m in self._members.values()]

    def get_member(self, member_id: str) -> Optional[MemberBase]:
        with self._members_lock:
            member = self._members.get(member_id)
            return member.model_copy(deep=True) if member else None

    def find_member_by_name(self, name: str) -> Optional[MemberBase]:
        wanted = name.strip().lower()
        with self._members_lock:
            for member in self._members.values():
                if member.name.lower() == wanted:
                    return member.model_copy(deep=True)
        return None

    def put_member(self, member: MemberBase) -> bool:
        with self._members_lock:
            self._members[member.member_id] = member.model_copy(deep=True)
        return True

    def delete_member(self, member_id: str) -> bool:
        with self._members_lock:
            return self._members.pop(member_id, None) is not None

    # Acquisition table

    def get_acquisition(self, key: AcquisitionKey) -> Optional[AcquisitionState]:
        state = self._acquisitions.get(key)
        return state.model_copy() if state else None

    def update_acquisition(
        self, key: AcquisitionKey, **changes: bool
    ) -> Tuple[AcquisitionState, AcquisitionState]:
        with self._acquisition_locks.hold(key.member_id):
            before = self._acquisitions.get(key) or AcquisitionState()
            after = before.model_copy(update=changes)
            self._acquisitions[key] = after
            return before.model_copy(), after.model_copy()

    def list_acquisitions(
        self, member_id: str, spec_type: SpecType, link: str
    ) -> Dict[GearSlot, AcquisitionState]:
        with self._acquisition_locks.hold(member_id):
            return {
                key.slot: state.model_copy()
                for key, state in self._acquisitions.items()
                if key.member_id == member_id
                and key.spec_type == spec_type
                and key.link == link
            }

    # Weeks

    def list_weeks(self) -> List[Week]:
        with self._weeks_lock:
            return [self._with_flag(week) for week in self._weeks.values()]

    def get_week(self, week_number: int) -> Optional[Week]:
        with self._weeks_lock:
            week = self._weeks.get(week_number)
            return self._with_flag(week) if week else None

    def create_week(self, week: Week) -> Week:
        with self._weeks_lock:
            if week.week_number in self._weeks:
                raise ConflictError(f"Week {week.week_number} already exists")
            self._weeks[week.week_number] = week.model_copy(update={"is_current": False})
            return self._with_flag(self._weeks[week.week_number])

    def set_current_week(self, week_number: int) -> None:
        with self._weeks_lock:
            if week_number not in self._weeks:
                raise NotFoundError("Week", week_number)
            self._current_week = week_number

    def get_current_week_number(self) -> Optional[int]:
        with self._weeks_lock:
            return self._current_week

    def delete_week(self, week_number: int) -> None:
        with self._weeks_lock:
            if self._weeks.pop(week_number, None) is None:
                raise NotFoundError("Week", week_number)
            if self._current_week == week_number:
                self._current_week = None

    def _with_flag(self, week: Week) -> Week:
        return week.model_copy(update={"is_current": week.week_number == self._current_week})

    # Assignments

    def list_assignments(self) -> List[LootAssignment]:
        with self._assignments_lock:
            return [a.model_copy() for a in self._assignments.values()]

    def list_assignments_by_week(self, week_number: int) -> List[LootAssignment]:
        with self._assignments_lock:
            return [
                a.model_copy()
                for a in self._assignments.values()
                if a.week_number == week_number
            ]

    def get_assignment(self, assignment_id: str) -> Optional[LootAssignment]:
        with self._assignments_lock:
            assignment = self._assignments.get(assignment_id)
            return assignment.model_copy() if assignment else None

    def find_assignment(
        self, floor_number: int, week_number: int, drop: DropDescriptor
    ) -> Optional[LootAssignment]:
        wanted = (
            floor_number,
            week_number,
            drop.slot,
            drop.is_upgrade_material,
            drop.is_armor_material,
        )
        with self._assignments_lock:
            for assignment in self._assignments.values():
                if assignment.drop_key() == wanted:
                    return assignment.model_copy()
        return None

    def insert_assignment(self, assignment: LootAssignment) -> LootAssignment:
        # Week lock first: a concurrent delete_week either sees this record or rejects it
        with self._weeks_lock, self._assignments_lock:
            self._raise_if_no_week(assignment.week_number)
            self._raise_if_taken(assignment)
            self._assignments[assignment.assignment_id] = assignment.model_copy()
            return assignment

    def replace_assignment(
        self, previous: LootAssignment, assignment: LootAssignment
    ) -> LootAssignment:
        with self._weeks_lock, self._assignments_lock:
            if previous.assignment_id not in self._assignments:
                raise NotFoundError("Assignment", previous.assignment_id)
            self._raise_if_no_week(assignment.week_number)
            self._raise_if_taken(assignment)
            self._assignments[assignment.assignment_id] = assignment.model_copy()
            return assignment

    def delete_assignment(self, assignment: LootAssignment) -> None:
        with self._assignments_lock:
            if self._assignments.pop(assignment.assignment_id, None) is None:
                raise NotFoundError("Assignment", assignment.assignment_id)

    def delete_assignments_by_week(self, week_number: int) -> List[LootAssignment]:
        with self._assignments_lock:
            removed = [
                a for a in self._assignments.values() if a.week_number == week_number
            ]
            for assignment in removed:
                del self._assignments[assignment.assignment_id]
            return removed

    def _raise_if_no_week(self, week_number: int) -> None:
        if week_number not in self._weeks:
            raise NotFoundError("Week", week_number)

    def _raise_if_taken(self, assignment: LootAssignment) -> None:
        for other in self._assignments.values():
            if (
                other.assignment_id != assignment.assignment_id
                and other.drop_key() == assignment.drop_key()
            ):
                raise ConflictError(
                    f"The {assignment.drop.label()} on floor {assignment.floor_number} "
                    f"has already been assigned in week {assignment.week_number}",
                    conflicting_id=other.assignment_id,
                )

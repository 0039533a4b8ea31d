"""
Storage contract consumed by the loot engine.

Each call is individually atomic. The engine sequences multi-call effects
itself and never assumes a transaction spanning calls. Two backends
implement it: ``services.memory_store.InMemoryStore`` and
``services.dynamodb.LootTrackerTable``.
"""

from typing import Dict, List, Optional, Protocol, Tuple

from models.acquisition import AcquisitionKey, AcquisitionState
from models.enums import GearSlot, SpecType
from models.loot import DropDescriptor, LootAssignment
from models.members import MemberBase
from models.weeks import Week


class LootStore(Protocol):
    # Members
    def list_members(self) -> List[MemberBase]: ...

    def get_member(self, member_id: str) -> Optional[MemberBase]: ...

    def find_member_by_name(self, name: str) -> Optional[MemberBase]: ...

    def put_member(self, member: MemberBase) -> bool: ...

    def delete_member(self, member_id: str) -> bool: ...

    # Acquisition table
    def get_acquisition(self, key: AcquisitionKey) -> Optional[AcquisitionState]: ...

    def update_acquisition(
        self, key: AcquisitionKey, **changes: bool
    ) -> Tuple[AcquisitionState, AcquisitionState]:
        """Apply flag changes to one row; return (before, after)."""
        ...

    def list_acquisitions(
        self, member_id: str, spec_type: SpecType, link: str
    ) -> Dict[GearSlot, AcquisitionState]: ...

    # Weeks
    def list_weeks(self) -> List[Week]: ...

    def get_week(self, week_number: int) -> Optional[Week]: ...

    def create_week(self, week: Week) -> Week:
        """Insert a week; raise ConflictError if the number exists."""
        ...

    def set_current_week(self, week_number: int) -> None:
        """Point the current week at an existing week; raise NotFoundError otherwise."""
        ...

    def get_current_week_number(self) -> Optional[int]: ...

    def delete_week(self, week_number: int) -> None:
        """Delete a week and clear the pointer if it pointed there; NotFoundError if absent."""
        ...

    # Assignments
    def list_assignments(self) -> List[LootAssignment]: ...

    def list_assignments_by_week(self, week_number: int) -> List[LootAssignment]: ...

    def get_assignment(self, assignment_id: str) -> Optional[LootAssignment]: ...

    def find_assignment(
        self, floor_number: int, week_number: int, drop: DropDescriptor
    ) -> Optional[LootAssignment]: ...

    def insert_assignment(self, assignment: LootAssignment) -> LootAssignment:
        """
        Insert atomically with a check that the week still exists.

        Raises NotFoundError if the week is gone, ConflictError if the drop is
        already taken.
        """
        ...

    def replace_assignment(
        self, previous: LootAssignment, assignment: LootAssignment
    ) -> LootAssignment:
        """Overwrite ``previous``; raise ConflictError if a moved drop is taken."""
        ...

    def delete_assignment(self, assignment: LootAssignment) -> None:
        """Delete the record and its drop; raise NotFoundError if it is already gone."""
        ...

    def delete_assignments_by_week(self, week_number: int) -> List[LootAssignment]:
        """Delete every assignment of a week, including ones inserted just before the week was deleted."""
        ...

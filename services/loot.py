"""
Loot distribution service.

Orchestrates one loot decision end to end: resolve eligibility, commit the
assignment, mark the recipient's BiS progress, then notify. Undo, reassign
and week deletion walk the same steps backwards.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from models.acquisition import AcquisitionState
from models.enums import (RING_SLOTS, SLOT_ORDER, EventKind, GearSlot, ItemType,
                          SpecType, material_slots)
from models.events import ChangeEvent
from models.loot import (DropDescriptor, DropEligibility, DropStatus,
                         LootAssignment, assignment_to_dict)
from models.members import MemberBase
from services.acquisition import AcquisitionStateStore
from services.assignments import AssignmentLedger, build_descriptor, validate_floor
from services.eligibility import EligibilityResolver, floor_drops
from services.members import MemberDirectory
from services.notifier import ChangeNotifier
from services.weeks import WeekLedger
from utils.errors import LootTrackerError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

UNKNOWN_MEMBER = "Unknown"


class LootDistributionService:
    def __init__(
        self,
        members: MemberDirectory,
        acquisitions: AcquisitionStateStore,
        weeks: WeekLedger,
        assignments: AssignmentLedger,
        eligibility: EligibilityResolver,
        notifier: ChangeNotifier,
    ):
        self.members = members
        self.acquisitions = acquisitions
        self.weeks = weeks
        self.assignments = assignments
        self.eligibility = eligibility
        self.notifier = notifier

    def assign_loot(
        self,
        member_id: str,
        floor_number: int,
        drop: DropDescriptor,
        spec_type: SpecType = SpecType.MAIN_SPEC,
        week_number: Optional[int] = None,
    ) -> LootAssignment:
        """
        Give a drop to a member.

        The week defaults to the current week. For MainSpec and OffSpec the
        recipient's BiS slot is chosen before the ledger commit and marked
        acquired after it; Extra assignments leave BiS progress alone.

        Raises:
            ValidationError: Bad floor, a drop the floor does not yield, no
                current week, or nothing in the recipient's BiS this drop fills
            NotFoundError: Unknown member or week
            ConflictError: The drop was already assigned this week
        """
        drop = self._floor_drop(floor_number, drop)
        week_number = self._week_or_current(week_number)
        member = self.members.get(member_id)

        acquired_slot = None
        if spec_type != SpecType.EXTRA:
            acquired_slot = self._choose_slot(member, spec_type, drop)

        assignment = self.assignments.create(
            LootAssignment(
                floor_number=floor_number,
                week_number=week_number,
                member_id=member.member_id,
                spec_type=spec_type,
                slot=drop.slot,
                is_upgrade_material=drop.is_upgrade_material,
                is_armor_material=drop.is_armor_material,
                acquired_slot=acquired_slot,
            )
        )

        # The record stays if this write fails; the error reaches the caller.
        self._mark(member, assignment, True)

        self.notifier.publish(
            ChangeEvent.for_assignment(EventKind.ASSIGNMENT_CREATED, assignment)
        )
        return assignment

    def undo(self, assignment_id: str) -> LootAssignment:
        """Delete an assignment and revert the BiS slot it marked."""
        removed = self.assignments.undo(assignment_id)
        self._revert(removed)
        self.notifier.publish(
            ChangeEvent.for_assignment(EventKind.ASSIGNMENT_REMOVED, removed)
        )
        return removed

    def reassign(
        self, assignment_id: str, member_id: str, spec_type: SpecType
    ) -> LootAssignment:
        """
        Correct the recipient or bucket of an assignment.

        The old recipient's slot is reverted and the new recipient's slot is
        marked. Unlike every other mutation this publishes two events: an
        AssignmentRemoved for the old record and an AssignmentCreated for the
        corrected one.
        """
        previous = self.assignments.get(assignment_id)
        member = self.members.get(member_id)

        self._revert(previous)
        try:
            acquired_slot = None
            if spec_type != SpecType.EXTRA:
                acquired_slot = self._choose_slot(member, spec_type, previous.drop)
        except LootTrackerError:
            self._restore(previous)
            raise

        corrected = self.assignments.update(
            previous.model_copy(
                update={
                    "member_id": member.member_id,
                    "spec_type": spec_type,
                    "acquired_slot": acquired_slot,
                }
            )
        )
        self._mark(member, corrected, True)

        self.notifier.publish(
            ChangeEvent.for_assignment(EventKind.ASSIGNMENT_REMOVED, previous)
        )
        self.notifier.publish(
            ChangeEvent.for_assignment(EventKind.ASSIGNMENT_CREATED, corrected)
        )
        return corrected

    def delete_week(self, week_number: int) -> List[LootAssignment]:
        """Delete a week, reverting the BiS progress of every assignment it removes."""
        return self.weeks.delete(week_number, on_removed=self._revert)

    def loot_board(
        self, floor_number: int, week_number: Optional[int] = None
    ) -> List[DropStatus]:
        """
        Every drop of a floor with its eligibility and current assignment.

        Without a week the current week is used; with no current week no drop
        reads as assigned.
        """
        validate_floor(floor_number)
        if week_number is None:
            current = self.weeks.get_current()
            week_number = current.week_number if current else None
        else:
            self.weeks.get(week_number)

        taken: Dict[tuple, LootAssignment] = {}
        if week_number is not None:
            for assignment in self.assignments.list_by_floor_and_week(floor_number, week_number):
                taken[assignment.drop_key()] = assignment

        board = []
        for drop in floor_drops(floor_number):
            key = (
                floor_number,
                week_number,
                drop.slot,
                drop.is_upgrade_material,
                drop.is_armor_material,
            )
            board.append(
                DropStatus(
                    drop=drop,
                    eligibility=self.eligibility.resolve(floor_number, drop),
                    assignment=taken.get(key),
                )
            )
        return board

    def resolve(
        self,
        floor_number: int,
        drop: DropDescriptor,
        spec_hint: Optional[SpecType] = None,
    ) -> DropEligibility:
        return self.eligibility.resolve(floor_number, self._floor_drop(floor_number, drop), spec_hint)

    def history(self, week_number: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Assignments grouped by week, newest week first.

        Within a week records are ordered by floor then assignment time.
        Assignments whose member was deleted read as ``Unknown``.
        """
        weeks = [self.weeks.get(week_number)] if week_number is not None else self.weeks.list()
        names = {m.member_id: m.name for m in self.members.list()}

        grouped = []
        for week in weeks:
            grouped.append(
                {
                    "week_number": week.week_number,
                    "is_current": week.is_current,
                    "started_at": week.started_at.isoformat(),
                    "assignments": [
                        assignment_to_dict(a, names.get(a.member_id, UNKNOWN_MEMBER))
                        for a in self.assignments.list_by_week(week.week_number)
                    ],
                }
            )
        return grouped

    def extra_counts(self, drop: DropDescriptor) -> Dict[str, int]:
        """How many times each member received this drop as Extra, across all weeks."""
        drop = build_descriptor(drop.slot, drop.is_upgrade_material, drop.is_armor_material)
        counts = Counter(
            a.member_id
            for a in self.assignments.list()
            if a.spec_type == SpecType.EXTRA and a.drop == drop
        )
        return dict(counts)

    def _floor_drop(self, floor_number: int, drop: DropDescriptor) -> DropDescriptor:
        validate_floor(floor_number)
        drop = build_descriptor(drop.slot, drop.is_upgrade_material, drop.is_armor_material)
        if drop not in floor_drops(floor_number):
            raise ValidationError(
                f"Floor {floor_number} does not drop the {drop.label()}",
                {"floor_number": floor_number},
            )
        return drop

    def _week_or_current(self, week_number: Optional[int]) -> int:
        if week_number is not None:
            return self.weeks.get(week_number).week_number
        current = self.weeks.get_current()
        if current is None:
            raise ValidationError("No current week set. Start a new week first.")
        return current.week_number

    def _choose_slot(
        self, member: MemberBase, spec_type: SpecType, drop: DropDescriptor
    ) -> GearSlot:
        """
        Pick the BiS slot this drop fills for the member.

        Rings fill an open LeftRing raid item before RightRing. Materials go to
        the first augmented tome item in slot order still missing one.
        """
        target = member.target(spec_type)
        if not target.link:
            raise ValidationError(
                f"{member.name} has no {spec_type.value} BiS link",
                {"member_id": member.member_id},
            )
        states = self.acquisitions.states_for(member, spec_type)

        if drop.is_upgrade_material:
            slots = material_slots(drop.is_armor_material)
            for item in sorted(target.items, key=lambda i: SLOT_ORDER[i.slot]):
                if (
                    item.slot in slots
                    and item.item_type == ItemType.AUGMENTED_TOME
                    and item.requires_upgrade_material
                    and not states.get(item.slot, AcquisitionState()).upgrade_material_acquired
                ):
                    return item.slot
            kind = "armor" if drop.is_armor_material else "accessory"
            raise ValidationError(
                f"{member.name} has no items that need {kind} upgrade material",
                {"member_id": member.member_id},
            )

        if drop.slot in RING_SLOTS:
            for slot in (GearSlot.LEFT_RING, GearSlot.RIGHT_RING):
                item = target.item_for(slot)
                if (
                    item is not None
                    and item.item_type == ItemType.RAID
                    and not states.get(slot, AcquisitionState()).is_acquired
                ):
                    return slot
            raise ValidationError(
                f"No ring item found for {member.name} ({spec_type.value})",
                {"member_id": member.member_id},
            )

        if target.item_for(drop.slot) is None:
            raise ValidationError(
                f"{member.name} has no {spec_type.value} item for {drop.slot.value}",
                {"member_id": member.member_id},
            )
        return drop.slot

    def _mark(self, member: MemberBase, assignment: LootAssignment, value: bool) -> None:
        if assignment.spec_type == SpecType.EXTRA or assignment.acquired_slot is None:
            return
        link = member.target(assignment.spec_type).link
        if assignment.is_upgrade_material:
            self.acquisitions.set_upgrade_material_acquired(
                member.member_id,
                assignment.spec_type,
                link,
                assignment.acquired_slot,
                value,
                emit=False,
            )
        else:
            self.acquisitions.set_acquired(
                member.member_id,
                assignment.spec_type,
                link,
                assignment.acquired_slot,
                value,
                emit=False,
            )

    def _revert(self, assignment: LootAssignment) -> None:
        """
        Clear the flag an assignment set.

        Skipped for Extra, for deleted members, and when the slot is no longer
        part of the member's current link.
        """
        if assignment.spec_type == SpecType.EXTRA or assignment.acquired_slot is None:
            return
        try:
            member = self.members.get(assignment.member_id)
            if not member.target(assignment.spec_type).link:
                return
            self._mark(member, assignment, False)
        except (NotFoundError, ValidationError) as e:
            logger.warning(
                "Skipped reverting acquisition",
                extra={
                    "assignment_id": assignment.assignment_id,
                    "member_id": assignment.member_id,
                    "reason": e.message,
                },
            )

    def _restore(self, assignment: LootAssignment) -> None:
        try:
            member = self.members.get(assignment.member_id)
        except NotFoundError:
            return
        self._mark(member, assignment, True)

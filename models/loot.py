"""Loot drop and assignment models for the raid loot tracker."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pydantic
from pydantic import BaseModel, Field

from models.dynamodb import AssignmentItem, DropGuardItem
from models.enums import MAX_FLOOR, MIN_FLOOR, GearSlot, SpecType


class DropDescriptor(BaseModel, frozen=True):
    """
    Identity of a lootable unit for uniqueness purposes.

    Either a gear slot, or an upgrade material (armor or accessory) with no
    slot. Both ring slots describe the same drop and normalize to RightRing.
    """

    slot: GearSlot | None = None
    is_upgrade_material: bool = False
    is_armor_material: bool = False

    @pydantic.model_validator(mode="after")
    def check_target(self):
        if self.is_upgrade_material and self.slot is not None:
            raise ValueError("An upgrade material drop has no gear slot")
        if not self.is_upgrade_material and self.slot is None:
            raise ValueError("A gear drop needs a slot")
        if not self.is_upgrade_material and self.is_armor_material:
            raise ValueError("Only upgrade materials can be armor materials")
        return self

    @classmethod
    def gear(cls, slot: GearSlot) -> "DropDescriptor":
        if slot == GearSlot.LEFT_RING:
            slot = GearSlot.RIGHT_RING
        return cls(slot=slot)

    @classmethod
    def material(cls, is_armor_material: bool) -> "DropDescriptor":
        return cls(is_upgrade_material=True, is_armor_material=is_armor_material)

    def normalized(self) -> "DropDescriptor":
        if self.slot == GearSlot.LEFT_RING:
            return DropDescriptor.gear(GearSlot.RIGHT_RING)
        return self

    def key(self) -> str:
        """Stable string form used in storage keys."""
        if self.is_upgrade_material:
            return "MATERIAL#ARMOR" if self.is_armor_material else "MATERIAL#ACCESSORY"
        return f"SLOT#{self.slot.value}"

    def label(self) -> str:
        if self.is_upgrade_material:
            return "armor upgrade material" if self.is_armor_material else "accessory upgrade material"
        return self.slot.value


class LootAssignment(BaseModel):
    """Which drop went to which member, on which floor and week, in which bucket."""

    assignment_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    floor_number: int = Field(..., ge=MIN_FLOOR, le=MAX_FLOOR)
    week_number: int = Field(..., ge=1)
    member_id: str
    spec_type: SpecType = SpecType.MAIN_SPEC
    slot: GearSlot | None = None
    is_upgrade_material: bool = False
    is_armor_material: bool = False
    acquired_slot: GearSlot | None = None  # BiS slot marked acquired for the recipient
    assigned_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def drop(self) -> DropDescriptor:
        return DropDescriptor(
            slot=self.slot,
            is_upgrade_material=self.is_upgrade_material,
            is_armor_material=self.is_armor_material,
        )

    def drop_key(self) -> tuple:
        """Uniqueness key: (floor, week, slot, is_upgrade_material, is_armor_material)."""
        return (
            self.floor_number,
            self.week_number,
            self.slot,
            self.is_upgrade_material,
            self.is_armor_material,
        )

    def guard_item(self) -> DropGuardItem:
        return DropGuardItem(
            PK=f"WEEK#{self.week_number}",
            SK=f"DROP#F{self.floor_number}#{self.drop.key()}",
            assignment_id=self.assignment_id,
        )

    def to_dynamodb_item(self) -> AssignmentItem:
        """Convert to DynamoDB item format."""
        assigned = self.assigned_at.isoformat()
        return AssignmentItem(
            PK=f"ASSIGNMENT#{self.assignment_id}",
            assignment_id=self.assignment_id,
            floor_number=self.floor_number,
            week_number=self.week_number,
            member_id=self.member_id,
            spec_type=self.spec_type.value,
            slot=self.slot.value if self.slot else None,
            is_upgrade_material=self.is_upgrade_material,
            is_armor_material=self.is_armor_material,
            acquired_slot=self.acquired_slot.value if self.acquired_slot else None,
            assigned_at=assigned,
            GSI1PK=f"WEEK#{self.week_number}",
            GSI1SK=f"FLOOR#{self.floor_number}#{assigned}",
        )

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> "LootAssignment":
        """Create a LootAssignment from a DynamoDB item."""
        if not item:
            return None

        return cls(
            assignment_id=item["assignment_id"],
            floor_number=int(item["floor_number"]),
            week_number=int(item["week_number"]),
            member_id=item["member_id"],
            spec_type=item.get("spec_type", SpecType.MAIN_SPEC.value),
            slot=item.get("slot"),
            is_upgrade_material=bool(item.get("is_upgrade_material", False)),
            is_armor_material=bool(item.get("is_armor_material", False)),
            acquired_slot=item.get("acquired_slot"),
            assigned_at=datetime.fromisoformat(item["assigned_at"]),
        )


class AssignLootRequest(BaseModel):
    """Request body for assigning a drop to a member."""

    member_id: str
    floor_number: int = Field(..., ge=MIN_FLOOR, le=MAX_FLOOR)
    slot: GearSlot | None = None
    is_upgrade_material: bool = False
    is_armor_material: bool = False
    spec_type: SpecType = SpecType.MAIN_SPEC
    week_number: int | None = Field(None, ge=1)


class ReassignRequest(BaseModel):
    """Request body for correcting the recipient or bucket of an assignment."""

    member_id: str
    spec_type: SpecType


class MemberNeed(BaseModel):
    """A member who may receive a drop, with how many of their pieces it serves."""

    member_id: str
    member_name: str
    needed_count: int = 0
    spec_type: SpecType


class DropEligibility(BaseModel):
    """Classification of a drop and its (unranked) candidates."""

    drop: DropDescriptor
    bucket: SpecType
    candidates: List[MemberNeed] = Field(default_factory=list)

    @property
    def candidate_ids(self) -> List[str]:
        return [candidate.member_id for candidate in self.candidates]


class DropStatus(BaseModel):
    """One entry of a floor's loot board."""

    drop: DropDescriptor
    eligibility: DropEligibility
    assignment: Optional[LootAssignment] = None

    @property
    def is_assigned(self) -> bool:
        return self.assignment is not None


def assignment_to_dict(
    assignment: LootAssignment, member_name: str | None = None
) -> Dict[str, Any]:
    """Convert an assignment to a dictionary for API responses."""
    data = assignment.model_dump(mode="json")
    if member_name is not None:
        data["member_name"] = member_name
    return data

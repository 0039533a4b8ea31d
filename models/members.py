"""Member and BiS models for the raid loot tracker."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pydantic
from pydantic import BaseModel, Field

from models.dynamodb import MemberItem
from models.enums import GearSlot, ItemType, MemberRole, PermissionRole, SpecType


class GearItem(BaseModel):
    """One BiS piece: the slot it fills and how it is obtained."""

    slot: GearSlot
    item_type: ItemType = ItemType.RAID
    item_name: str | None = None
    requires_upgrade_material: bool | None = None

    @pydantic.model_validator(mode="after")
    def default_upgrade_step(self):
        # Augmented tome gear is the only kind upgraded with a raid material.
        if self.requires_upgrade_material is None:
            self.requires_upgrade_material = self.item_type == ItemType.AUGMENTED_TOME
        return self


class BisTarget(BaseModel):
    """The BiS set for one spec: the active gear link and its items."""

    link: str | None = None
    items: List[GearItem] = Field(default_factory=list)

    def item_for(self, slot: GearSlot) -> Optional[GearItem]:
        return next((item for item in self.items if item.slot == slot), None)


class MemberBase(BaseModel):
    """A raid roster member with main and off spec BiS targets."""

    member_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique identifier for the member",
    )
    name: str = Field(..., min_length=1, max_length=50)
    role: MemberRole = MemberRole.DPS
    permission_role: PermissionRole = PermissionRole.USER
    pin_hash: str = Field(..., min_length=1, repr=False)
    profile_image_url: str | None = None
    main_spec: BisTarget = Field(default_factory=BisTarget)
    off_spec: BisTarget = Field(default_factory=BisTarget)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @pydantic.field_validator("name")
    def name_must_not_be_blank(cls, v):
        if not v.strip():
            raise ValueError("Name must not be blank")
        return v.strip()

    def target(self, spec_type: SpecType) -> BisTarget:
        """Return the BiS target for MainSpec or OffSpec."""
        if spec_type == SpecType.OFF_SPEC:
            return self.off_spec
        if spec_type == SpecType.MAIN_SPEC:
            return self.main_spec
        raise ValueError(f"Spec type {spec_type.value} has no BiS target")

    def to_dynamodb_item(self) -> MemberItem:
        """Convert to DynamoDB item format."""
        now = datetime.now(timezone.utc).isoformat()
        created = self.created_at.isoformat() if self.created_at else now
        updated = self.updated_at.isoformat() if self.updated_at else now

        return MemberItem(
            SK=f"MEMBER#{self.member_id}",
            member_id=self.member_id,
            name=self.name,
            name_lower=self.name.lower(),
            role=self.role.value,
            permission_role=self.permission_role.value,
            pin_hash=self.pin_hash,
            profile_image_url=self.profile_image_url,
            main_spec=self.main_spec.model_dump(mode="json"),
            off_spec=self.off_spec.model_dump(mode="json"),
            created_at=created,
            updated_at=updated,
        )

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> "MemberBase":
        """Create a MemberBase instance from a DynamoDB item."""
        if not item:
            return None

        # Extract member_id from SK format "MEMBER#{member_id}"
        member_id = item.get("member_id") or item.get("SK", "").replace("MEMBER#", "")

        return cls(
            member_id=member_id,
            name=item.get("name", ""),
            role=item.get("role", MemberRole.DPS.value),
            permission_role=item.get("permission_role", PermissionRole.USER.value),
            pin_hash=item.get("pin_hash", ""),
            profile_image_url=item.get("profile_image_url"),
            main_spec=BisTarget.model_validate(item.get("main_spec") or {}),
            off_spec=BisTarget.model_validate(item.get("off_spec") or {}),
            created_at=(
                datetime.fromisoformat(item.get("created_at"))
                if item.get("created_at")
                else None
            ),
            updated_at=(
                datetime.fromisoformat(item.get("updated_at"))
                if item.get("updated_at")
                else None
            ),
        )


class MemberCreate(BaseModel):
    """Model for creating members - the PIN is never accepted from callers."""

    name: str = Field(..., min_length=1, max_length=50)
    role: MemberRole = MemberRole.DPS


class MemberUpdate(BaseModel):
    """Patch for the editable profile fields of a member."""

    name: str | None = Field(None, min_length=1, max_length=50)
    role: MemberRole | None = None
    profile_image_url: str | None = None


class BisLinkUpdate(BaseModel):
    """Request body for replacing a spec's BiS link and items."""

    spec_type: SpecType = SpecType.MAIN_SPEC
    link: str = Field(..., min_length=1)
    items: List[GearItem] | None = None  # Imported from the link when omitted


def member_to_dict(member: MemberBase) -> Dict[str, Any]:
    """Convert a member to a dictionary for API responses (no PIN hash)."""
    return member.model_dump(mode="json", exclude={"pin_hash"})

"""Acquisition-state models for the raid loot tracker."""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel

from models.dynamodb import AcquisitionItem
from models.enums import GearSlot, SpecType
from models.members import GearItem


class AcquisitionState(BaseModel):
    """Whether a slot's base item and its upgrade material are acquired."""

    is_acquired: bool = False
    upgrade_material_acquired: bool = False


class AcquisitionKey(BaseModel, frozen=True):
    """Composite key of the acquisition table."""

    member_id: str
    spec_type: SpecType
    link: str
    slot: GearSlot

    def to_dynamodb_key(self) -> Dict[str, str]:
        return {
            "PK": f"MEMBER#{self.member_id}",
            "SK": f"ACQ#{self.spec_type.value}#{self.slot.value}#{self.link}",
        }

    def to_dynamodb_item(self, state: AcquisitionState) -> AcquisitionItem:
        """Convert a key/state pair to DynamoDB item format."""
        return AcquisitionItem(
            **self.to_dynamodb_key(),
            member_id=self.member_id,
            spec_type=self.spec_type.value,
            slot=self.slot.value,
            link=self.link,
            is_acquired=state.is_acquired,
            upgrade_material_acquired=state.upgrade_material_acquired,
            updated_at=datetime.now(timezone.utc).isoformat(),
        )


class BisItemView(BaseModel):
    """A BiS item joined with its acquisition state under the current link."""

    slot: GearSlot
    item_type: str
    item_name: str | None = None
    requires_upgrade_material: bool
    is_acquired: bool
    upgrade_material_acquired: bool

    @classmethod
    def build(cls, item: GearItem, state: AcquisitionState) -> "BisItemView":
        return cls(
            slot=item.slot,
            item_type=item.item_type.value,
            item_name=item.item_name,
            requires_upgrade_material=bool(item.requires_upgrade_material),
            is_acquired=state.is_acquired,
            upgrade_material_acquired=state.upgrade_material_acquired,
        )


def state_from_dynamodb_item(item: Dict[str, Any]) -> AcquisitionState:
    """Read the state columns of an acquisition row."""
    return AcquisitionState(
        is_acquired=bool(item.get("is_acquired", False)),
        upgrade_material_acquired=bool(item.get("upgrade_material_acquired", False)),
    )

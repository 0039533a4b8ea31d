"""Change events published after state mutations."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from models.enums import EventKind, GearSlot, SpecType
from models.loot import LootAssignment


class ChangeEvent(BaseModel, frozen=True):
    """
    Notification emitted once per committed mutation.

    Assignment events carry the floor and week; acquisition events carry the
    new flag values.
    """

    kind: EventKind
    member_id: str | None = None
    slot: GearSlot | None = None
    spec_type: SpecType | None = None
    floor_number: int | None = None
    week_number: int | None = None
    is_upgrade_material: bool = False
    is_armor_material: bool = False
    is_acquired: bool | None = None
    upgrade_material_acquired: bool | None = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_assignment(cls, kind: EventKind, assignment: LootAssignment) -> "ChangeEvent":
        return cls(
            kind=kind,
            member_id=assignment.member_id,
            slot=assignment.slot,
            spec_type=assignment.spec_type,
            floor_number=assignment.floor_number,
            week_number=assignment.week_number,
            is_upgrade_material=assignment.is_upgrade_material,
            is_armor_material=assignment.is_armor_material,
        )

"""DynamoDB data models for the raid loot tracker (single-table design)."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class DynamoDBItem(BaseModel):
    """Base class for all DynamoDB items."""

    PK: str
    SK: str


class MemberItem(DynamoDBItem):
    """Represents a roster member in DynamoDB."""

    PK: str = "ROSTER"
    SK: str  # MEMBER#{member_id}
    member_id: str
    name: str
    name_lower: str  # For case-insensitive login lookups
    role: str
    permission_role: str
    pin_hash: str
    profile_image_url: str | None = None
    main_spec: Dict[str, Any]  # {"link": str | None, "items": [...]}
    off_spec: Dict[str, Any]
    created_at: str
    updated_at: str


class AcquisitionItem(DynamoDBItem):
    """One row of the composite-keyed acquisition table."""

    PK: str  # MEMBER#{member_id}
    SK: str  # ACQ#{spec_type}#{slot}#{link}
    member_id: str
    spec_type: str
    slot: str
    link: str
    is_acquired: bool = False
    upgrade_material_acquired: bool = False
    updated_at: str


class WeekItem(DynamoDBItem):
    """Represents a raid week in DynamoDB."""

    PK: str = "WEEKS"
    SK: str  # WEEK#{week_number:06d}
    week_number: int
    started_at: str


class CurrentWeekItem(DynamoDBItem):
    """Single pointer to the current week; one write flips the current week."""

    PK: str = "WEEKS"
    SK: str = "CURRENT"
    week_number: int
    updated_at: str


class AssignmentItem(DynamoDBItem):
    """Represents a loot assignment in DynamoDB."""

    PK: str  # ASSIGNMENT#{assignment_id}
    SK: str = "ASSIGNMENT#INFO"
    assignment_id: str
    floor_number: int
    week_number: int
    member_id: str
    spec_type: str
    slot: str | None = None
    is_upgrade_material: bool = False
    is_armor_material: bool = False
    acquired_slot: str | None = None
    assigned_at: str
    GSI1PK: str  # WEEK#{week_number}
    GSI1SK: str  # FLOOR#{floor_number}#{assigned_at}


class DropGuardItem(DynamoDBItem):
    """
    Uniqueness guard for one drop in one week.

    Written in the same transaction as its assignment with
    ``attribute_not_exists(PK)``, so a second assignment of the drop fails
    at the storage level.
    """

    PK: str  # WEEK#{week_number}
    SK: str  # DROP#F{floor_number}#{descriptor key}
    assignment_id: str


def without_none(item: Dict[str, Any], keep: Optional[List[str]] = None) -> Dict[str, Any]:
    """Drop None-valued top-level attributes, except those listed in ``keep``."""
    keep = keep or []
    return {k: v for k, v in item.items() if v is not None or k in keep}

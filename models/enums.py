"""Enumerations and static raid-tier tables for the loot tracker."""

from enum import Enum
from typing import Dict, List, Tuple


class GearSlot(str, Enum):
    """Gear slots a BiS set can hold. Declaration order is the canonical slot order."""

    WEAPON = "Weapon"
    HEAD = "Head"
    BODY = "Body"
    HAND = "Hand"
    LEGS = "Legs"
    FEET = "Feet"
    EARS = "Ears"
    NECK = "Neck"
    WRIST = "Wrist"
    RIGHT_RING = "RightRing"
    LEFT_RING = "LeftRing"


class ItemType(str, Enum):
    """Where a BiS piece comes from."""

    RAID = "Raid"
    AUGMENTED_TOME = "AugmentedTome"


class MemberRole(str, Enum):
    DPS = "DPS"
    SUPPORT = "Support"


class PermissionRole(str, Enum):
    """Permission levels, lowest first."""

    USER = "User"
    MANAGER = "Manager"
    ADMINISTRATOR = "Administrator"


class SpecType(str, Enum):
    """Spec bucket a drop or acquisition belongs to."""

    MAIN_SPEC = "MainSpec"
    OFF_SPEC = "OffSpec"
    EXTRA = "Extra"


class EventKind(str, Enum):
    ACQUISITION_CHANGED = "AcquisitionChanged"
    ASSIGNMENT_CREATED = "AssignmentCreated"
    ASSIGNMENT_REMOVED = "AssignmentRemoved"


SLOT_ORDER: Dict[GearSlot, int] = {slot: index for index, slot in enumerate(GearSlot)}

RING_SLOTS: Tuple[GearSlot, ...] = (GearSlot.RIGHT_RING, GearSlot.LEFT_RING)

# Armor pieces are upgraded with the floor 3 material, accessories with floor 2's.
ARMOR_SLOTS: Tuple[GearSlot, ...] = (
    GearSlot.HEAD,
    GearSlot.HAND,
    GearSlot.FEET,
    GearSlot.BODY,
    GearSlot.LEGS,
)
ACCESSORY_SLOTS: Tuple[GearSlot, ...] = (
    GearSlot.EARS,
    GearSlot.NECK,
    GearSlot.WRIST,
    GearSlot.LEFT_RING,
    GearSlot.RIGHT_RING,
)

MIN_FLOOR = 1
MAX_FLOOR = 4

# Gear dropped per floor. Floor 1 drops a single ring, keyed as RightRing.
FLOOR_GEAR_SLOTS: Dict[int, List[GearSlot]] = {
    1: [GearSlot.EARS, GearSlot.NECK, GearSlot.WRIST, GearSlot.RIGHT_RING],
    2: [GearSlot.HEAD, GearSlot.HAND, GearSlot.FEET],
    3: [GearSlot.BODY, GearSlot.LEGS],
    4: [GearSlot.WEAPON],
}

# Upgrade material dropped per floor: False for accessory material, True for armor.
FLOOR_MATERIALS: Dict[int, List[bool]] = {
    1: [],
    2: [False],
    3: [True],
    4: [],
}


def material_slots(is_armor_material: bool) -> Tuple[GearSlot, ...]:
    """Slots whose augmented pieces consume the given upgrade material."""
    return ARMOR_SLOTS if is_armor_material else ACCESSORY_SLOTS


def parse_slot(value) -> GearSlot:
    """
    Resolve a slot from its name.

    Accepts the enum itself, its value ("RightRing") or its member name
    ("RIGHT_RING"), case-insensitively.

    Raises:
        ValueError: If the value names no known slot
    """
    if isinstance(value, GearSlot):
        return value
    text = str(value).strip()
    for slot in GearSlot:
        if text.lower() in (slot.value.lower(), slot.name.lower()):
            return slot
    raise ValueError(f"Unknown gear slot: {value}")

"""
Shared builders for the raid loot tracker tests.
"""

from models.enums import GearSlot, ItemType
from models.members import GearItem

MAIN_LINK = "https://xivgear.app/?page=sl|0f6a2f0e-1111-4c3b-9a1e-000000000001"
ALT_LINK = "https://xivgear.app/?page=sl|0f6a2f0e-2222-4c3b-9a1e-000000000002"
OFF_LINK = "https://xivgear.app/?page=sl|0f6a2f0e-3333-4c3b-9a1e-000000000003"


def raid(slot):
    return GearItem(slot=slot, item_type=ItemType.RAID)


def tome(slot):
    return GearItem(slot=slot, item_type=ItemType.AUGMENTED_TOME)


def full_bis():
    """A typical set: raid weapon, mixed armor and accessories, one raid ring."""
    return [
        raid(GearSlot.WEAPON),
        raid(GearSlot.HEAD),
        tome(GearSlot.BODY),
        raid(GearSlot.HAND),
        tome(GearSlot.LEGS),
        raid(GearSlot.FEET),
        tome(GearSlot.EARS),
        raid(GearSlot.NECK),
        tome(GearSlot.WRIST),
        tome(GearSlot.RIGHT_RING),
        raid(GearSlot.LEFT_RING),
    ]

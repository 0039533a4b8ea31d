"""
Eligibility resolver: which members still need a drop, and in which bucket.

Need is binary per item; candidates are returned unranked.
"""

from typing import Dict, List, Optional

from models.acquisition import AcquisitionState
from models.enums import (FLOOR_GEAR_SLOTS, FLOOR_MATERIALS, RING_SLOTS,
                          GearSlot, ItemType, SpecType, material_slots)
from models.loot import DropDescriptor, DropEligibility, MemberNeed
from models.members import MemberBase
from services.acquisition import AcquisitionStateStore
from services.assignments import validate_floor
from services.repositories import LootStore
from utils.errors import ValidationError

NEED_SPECS = (SpecType.MAIN_SPEC, SpecType.OFF_SPEC)


def floor_drops(floor_number: int) -> List[DropDescriptor]:
    """Every drop a floor yields: its gear slots, then its upgrade materials."""
    validate_floor(floor_number)
    drops = [DropDescriptor.gear(slot) for slot in FLOOR_GEAR_SLOTS[floor_number]]
    drops.extend(
        DropDescriptor.material(is_armor) for is_armor in FLOOR_MATERIALS[floor_number]
    )
    return drops


def needed_count(
    member: MemberBase,
    spec_type: SpecType,
    drop: DropDescriptor,
    states: Dict[GearSlot, AcquisitionState],
) -> int:
    """
    How many of the member's BiS items for ``spec_type`` this drop serves.

    Gear serves a Raid item not yet acquired (either ring slot for rings).
    Material serves an augmented tome item in its group still missing its
    upgrade material.
    """
    target = member.target(spec_type)
    if drop.is_upgrade_material:
        slots = material_slots(drop.is_armor_material)
        return sum(
            1
            for item in target.items
            if item.slot in slots
            and item.item_type == ItemType.AUGMENTED_TOME
            and item.requires_upgrade_material
            and not states.get(item.slot, AcquisitionState()).upgrade_material_acquired
        )

    slots = RING_SLOTS if drop.slot in RING_SLOTS else (drop.slot,)
    return sum(
        1
        for item in target.items
        if item.slot in slots
        and item.item_type == ItemType.RAID
        and not states.get(item.slot, AcquisitionState()).is_acquired
    )


class EligibilityResolver:
    def __init__(self, store: LootStore, acquisitions: AcquisitionStateStore):
        self.store = store
        self.acquisitions = acquisitions

    def resolve(
        self,
        floor_number: int,
        drop: DropDescriptor,
        spec_hint: Optional[SpecType] = None,
    ) -> DropEligibility:
        """
        Classify a drop and list who may receive it.

        Without a hint the first non-empty bucket of MainSpec, OffSpec wins;
        with a MainSpec or OffSpec hint that bucket is returned. Either way the
        drop falls back to Extra, open to every member, when nobody needs it.
        """
        validate_floor(floor_number)
        if not isinstance(drop, DropDescriptor):
            raise ValidationError("Invalid drop descriptor")
        drop = drop.normalized()

        members = sorted(self.store.list_members(), key=lambda m: m.name.lower())
        if spec_hint == SpecType.EXTRA:
            return self._extra(drop, members)

        buckets = {spec: self._candidates(spec, drop, members) for spec in NEED_SPECS}
        if spec_hint in NEED_SPECS:
            if any(buckets.values()):
                return DropEligibility(drop=drop, bucket=spec_hint, candidates=buckets[spec_hint])
            return self._extra(drop, members)

        for spec in NEED_SPECS:
            if buckets[spec]:
                return DropEligibility(drop=drop, bucket=spec, candidates=buckets[spec])
        return self._extra(drop, members)

    def floor_drops(self, floor_number: int) -> List[DropDescriptor]:
        return floor_drops(floor_number)

    def _candidates(
        self, spec_type: SpecType, drop: DropDescriptor, members: List[MemberBase]
    ) -> List[MemberNeed]:
        candidates = []
        for member in members:
            states = self.acquisitions.states_for(member, spec_type)
            count = needed_count(member, spec_type, drop, states)
            if count:
                candidates.append(
                    MemberNeed(
                        member_id=member.member_id,
                        member_name=member.name,
                        needed_count=count,
                        spec_type=spec_type,
                    )
                )
        return candidates

    @staticmethod
    def _extra(drop: DropDescriptor, members: List[MemberBase]) -> DropEligibility:
        return DropEligibility(
            drop=drop,
            bucket=SpecType.EXTRA,
            candidates=[
                MemberNeed(
                    member_id=m.member_id, member_name=m.name, spec_type=SpecType.EXTRA
                )
                for m in members
            ],
        )

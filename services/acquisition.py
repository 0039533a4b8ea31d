"""
Acquisition state store.

Flags are keyed by (member, spec, link, slot) so each gear link keeps its own
progress. Rows are never removed when a member switches links.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from models.acquisition import AcquisitionKey, AcquisitionState, BisItemView
from models.enums import EventKind, GearSlot, SpecType
from models.events import ChangeEvent
from models.members import BisTarget, MemberBase
from services.repositories import LootStore
from utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class AcquisitionStateStore:
    def __init__(
        self,
        store: LootStore,
        publish: Optional[Callable[[ChangeEvent], None]] = None,
    ):
        self.store = store
        self.publish = publish

    def _member(self, member_id: str) -> MemberBase:
        member = self.store.get_member(member_id)
        if member is None:
            raise NotFoundError("Member", member_id)
        return member

    def _target(self, member: MemberBase, spec_type: SpecType) -> BisTarget:
        try:
            return member.target(spec_type)
        except ValueError:
            raise ValidationError(f"{spec_type.value} has no acquisition state")

    def _resolve_key(
        self, member_id: str, spec_type: SpecType, link: str, slot: GearSlot
    ) -> Tuple[AcquisitionKey, BisTarget]:
        """
        Check that the member, link and slot are known.

        A link is known when it is the spec's current link or already has rows;
        a slot is known when the current link lists it or a row exists for it.
        """
        member = self._member(member_id)
        target = self._target(member, spec_type)
        key = AcquisitionKey(member_id=member_id, spec_type=spec_type, link=link, slot=slot)

        if link and link == target.link:
            if target.item_for(slot) is not None:
                return key, target
            if self.store.get_acquisition(key) is not None:
                return key, target
            raise NotFoundError("BiS slot", f"{slot.value} under link {link}")

        recorded = self.store.list_acquisitions(member_id, spec_type, link)
        if not recorded:
            raise NotFoundError("BiS link", link)
        if slot not in recorded:
            raise NotFoundError("BiS slot", f"{slot.value} under link {link}")
        return key, target

    def get_state(
        self, member_id: str, spec_type: SpecType, link: str, slot: GearSlot
    ) -> AcquisitionState:
        """Missing rows read as not acquired."""
        key = AcquisitionKey(member_id=member_id, spec_type=spec_type, link=link, slot=slot)
        return self.store.get_acquisition(key) or AcquisitionState()

    def set_acquired(
        self,
        member_id: str,
        spec_type: SpecType,
        link: str,
        slot: GearSlot,
        is_acquired: bool,
        emit: bool = True,
    ) -> AcquisitionState:
        """
        Set whether the slot's base item is acquired.

        Idempotent; an ``AcquisitionChanged`` event is published only when the
        stored state actually changed and ``emit`` is set.
        """
        key, _ = self._resolve_key(member_id, spec_type, link, slot)
        return self._write(key, emit, is_acquired=bool(is_acquired))

    def set_upgrade_material_acquired(
        self,
        member_id: str,
        spec_type: SpecType,
        link: str,
        slot: GearSlot,
        value: bool,
        emit: bool = True,
    ) -> AcquisitionState:
        """
        Set whether the slot's upgrade material is acquired.

        Raises:
            ValidationError: The current link's item in this slot has no upgrade step
        """
        key, target = self._resolve_key(member_id, spec_type, link, slot)
        if link == target.link:
            item = target.item_for(slot)
            if item is not None and not item.requires_upgrade_material:
                raise ValidationError(
                    f"{slot.value} item does not take an upgrade material",
                    {"slot": slot.value},
                )
        return self._write(key, emit, upgrade_material_acquired=bool(value))

    def states_for(
        self, member: MemberBase, spec_type: SpecType
    ) -> Dict[GearSlot, AcquisitionState]:
        """Slot to state under the spec's current link. Empty when no link is set."""
        target = self._target(member, spec_type)
        if not target.link:
            return {}
        return self.store.list_acquisitions(member.member_id, spec_type, target.link)

    def bis_view(self, member: MemberBase, spec_type: SpecType) -> List[BisItemView]:
        """The current link's items joined with their acquisition state."""
        target = self._target(member, spec_type)
        states = self.states_for(member, spec_type)
        return [
            BisItemView.build(item, states.get(item.slot, AcquisitionState()))
            for item in target.items
        ]

    def _write(self, key: AcquisitionKey, emit: bool, **changes: bool) -> AcquisitionState:
        before, after = self.store.update_acquisition(key, **changes)
        if before == after:
            return after

        logger.info(
            "Acquisition changed",
            extra={
                "member_id": key.member_id,
                "spec_type": key.spec_type.value,
                "slot": key.slot.value,
                "is_acquired": after.is_acquired,
                "upgrade_material_acquired": after.upgrade_material_acquired,
            },
        )
        if emit and self.publish is not None:
            self.publish(
                ChangeEvent(
                    kind=EventKind.ACQUISITION_CHANGED,
                    member_id=key.member_id,
                    slot=key.slot,
                    spec_type=key.spec_type,
                    is_acquired=after.is_acquired,
                    upgrade_material_acquired=after.upgrade_material_acquired,
                )
            )
        return after

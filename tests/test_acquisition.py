"""
Tests for the acquisition state store.
"""

import pytest

from helpers import ALT_LINK, MAIN_LINK, full_bis
from models.enums import EventKind, GearSlot, SpecType
from utils.errors import NotFoundError, ValidationError


class TestSetAcquired:
    def test_missing_row_reads_false(self, tracker, alice):
        state = tracker.acquisitions.get_state(
            alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.HEAD
        )
        assert not state.is_acquired
        assert not state.upgrade_material_acquired

    def test_idempotent_with_single_event(self, tracker, alice, events):
        for _ in range(3):
            state = tracker.acquisitions.set_acquired(
                alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.HEAD, True
            )
        tracker.notifier.drain()

        assert state.is_acquired
        assert len(events) == 1
        assert events[0].kind == EventKind.ACQUISITION_CHANGED
        assert events[0].slot == GearSlot.HEAD
        assert events[0].is_acquired is True

    def test_emit_false_publishes_nothing(self, tracker, alice, events):
        tracker.acquisitions.set_acquired(
            alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.HEAD, True, emit=False
        )
        tracker.notifier.drain()

        assert events == []

    def test_unknown_slot(self, tracker, alice):
        tracker.members.set_bis_link(alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, [])

        with pytest.raises(NotFoundError):
            tracker.acquisitions.set_acquired(
                alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.HEAD, True
            )

    def test_unknown_link(self, tracker, alice):
        with pytest.raises(NotFoundError):
            tracker.acquisitions.set_acquired(
                alice.member_id, SpecType.MAIN_SPEC, ALT_LINK, GearSlot.HEAD, True
            )

    def test_unknown_member(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.acquisitions.set_acquired(
                "missing", SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.HEAD, True
            )

    def test_extra_has_no_state(self, tracker, alice):
        with pytest.raises(ValidationError):
            tracker.acquisitions.set_acquired(
                alice.member_id, SpecType.EXTRA, MAIN_LINK, GearSlot.HEAD, True
            )

    def test_previous_link_stays_writable(self, tracker, alice):
        tracker.acquisitions.set_acquired(
            alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.HEAD, True
        )
        tracker.members.set_bis_link(alice.member_id, SpecType.MAIN_SPEC, ALT_LINK, full_bis())

        state = tracker.acquisitions.set_acquired(
            alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.HEAD, False
        )
        assert not state.is_acquired


class TestUpgradeMaterial:
    def test_tome_item_accepts_material(self, tracker, alice):
        state = tracker.acquisitions.set_upgrade_material_acquired(
            alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.BODY, True
        )
        assert state.upgrade_material_acquired
        assert not state.is_acquired

    def test_raid_item_rejects_material(self, tracker, alice):
        with pytest.raises(ValidationError):
            tracker.acquisitions.set_upgrade_material_acquired(
                alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.HEAD, True
            )


class TestViews:
    def test_link_switch_keeps_progress_per_link(self, tracker, alice):
        tracker.acquisitions.set_acquired(
            alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.WEAPON, True
        )

        switched = tracker.members.set_bis_link(
            alice.member_id, SpecType.MAIN_SPEC, ALT_LINK, full_bis()
        )
        assert tracker.acquisitions.states_for(switched, SpecType.MAIN_SPEC) == {}

        restored = tracker.members.set_bis_link(
            alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, full_bis()
        )
        states = tracker.acquisitions.states_for(restored, SpecType.MAIN_SPEC)
        assert states[GearSlot.WEAPON].is_acquired

    def test_bis_view_joins_items_and_state(self, tracker, alice):
        tracker.acquisitions.set_acquired(
            alice.member_id, SpecType.MAIN_SPEC, MAIN_LINK, GearSlot.NECK, True
        )

        view = {v.slot: v for v in tracker.acquisitions.bis_view(alice, SpecType.MAIN_SPEC)}

        assert len(view) == len(full_bis())
        assert view[GearSlot.NECK].is_acquired
        assert not view[GearSlot.HEAD].is_acquired
        assert view[GearSlot.BODY].requires_upgrade_material
        assert not view[GearSlot.WEAPON].requires_upgrade_material

    def test_no_link_means_no_state(self, tracker):
        member = tracker.members.create("Nolink")
        assert tracker.acquisitions.states_for(member, SpecType.OFF_SPEC) == {}

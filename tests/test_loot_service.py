"""
Tests for the loot distribution service.
"""

import threading

import pytest

from helpers import ALT_LINK, MAIN_LINK, raid
from models.enums import EventKind, GearSlot, SpecType
from models.loot import DropDescriptor
from utils.errors import ConflictError, NotFoundError, ValidationError

HEAD = DropDescriptor.gear(GearSlot.HEAD)
RING = DropDescriptor.gear(GearSlot.RIGHT_RING)
ARMOR_MATERIAL = DropDescriptor.material(True)
ACCESSORY_MATERIAL = DropDescriptor.material(False)


def state(tracker, member, slot, spec=SpecType.MAIN_SPEC, link=MAIN_LINK):
    return tracker.acquisitions.get_state(member.member_id, spec, link, slot)


class TestAssign:
    def test_marks_slot_and_publishes_once(self, tracker, alice, week, events):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        tracker.notifier.drain()

        assert assignment.week_number == week.week_number
        assert assignment.acquired_slot == GearSlot.HEAD
        assert state(tracker, alice, GearSlot.HEAD).is_acquired
        assert [e.kind for e in events] == [EventKind.ASSIGNMENT_CREATED]
        assert events[0].floor_number == 2

    def test_second_assignment_conflicts(self, tracker, alice, bob, week):
        first = tracker.loot.assign_loot(alice.member_id, 2, HEAD)

        with pytest.raises(ConflictError) as exc:
            tracker.loot.assign_loot(bob.member_id, 2, HEAD)

        assert exc.value.conflicting_id == first.assignment_id
        assert not state(tracker, bob, GearSlot.HEAD).is_acquired

    def test_extra_leaves_progress_alone(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD, SpecType.EXTRA)

        assert assignment.acquired_slot is None
        assert not state(tracker, alice, GearSlot.HEAD).is_acquired

    def test_explicit_week(self, tracker, alice, week):
        tracker.weeks.create(7)
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD, week_number=7)
        assert assignment.week_number == 7

    def test_no_current_week(self, tracker, alice):
        with pytest.raises(ValidationError):
            tracker.loot.assign_loot(alice.member_id, 2, HEAD)

    def test_unknown_week(self, tracker, alice, week):
        with pytest.raises(NotFoundError):
            tracker.loot.assign_loot(alice.member_id, 2, HEAD, week_number=99)

    def test_unknown_member(self, tracker, week):
        with pytest.raises(NotFoundError):
            tracker.loot.assign_loot("missing", 2, HEAD)

    def test_floor_does_not_drop_it(self, tracker, alice, week):
        with pytest.raises(ValidationError):
            tracker.loot.assign_loot(alice.member_id, 2, DropDescriptor.gear(GearSlot.WEAPON))

    def test_member_without_the_item(self, tracker, week):
        member = tracker.members.create("Bare")
        tracker.members.set_bis_link(member.member_id, SpecType.MAIN_SPEC, MAIN_LINK, [])

        with pytest.raises(ValidationError):
            tracker.loot.assign_loot(member.member_id, 2, HEAD)
        assert tracker.assignments.list() == []

    def test_acquisition_failure_keeps_record(self, tracker, alice, week, events, monkeypatch):
        def unavailable(*args, **kwargs):
            raise RuntimeError("acquisition table unavailable")

        monkeypatch.setattr(tracker.acquisitions, "set_acquired", unavailable)

        with pytest.raises(RuntimeError):
            tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        tracker.notifier.drain()

        kept = tracker.assignments.list_by_week(week.week_number)
        assert [a.member_id for a in kept] == [alice.member_id]
        assert events == []
        assert not state(tracker, alice, GearSlot.HEAD).is_acquired


class TestRingsAndMaterials:
    def test_ring_fills_left_then_right(self, tracker, week):
        member = tracker.members.create("Ringer")
        member = tracker.members.set_bis_link(
            member.member_id,
            SpecType.MAIN_SPEC,
            MAIN_LINK,
            [raid(GearSlot.RIGHT_RING), raid(GearSlot.LEFT_RING)],
        )

        first = tracker.loot.assign_loot(member.member_id, 1, RING)
        tracker.weeks.start_next()
        second = tracker.loot.assign_loot(member.member_id, 1, RING)
        tracker.weeks.start_next()

        assert first.acquired_slot == GearSlot.LEFT_RING
        assert second.acquired_slot == GearSlot.RIGHT_RING
        assert state(tracker, member, GearSlot.LEFT_RING).is_acquired
        assert state(tracker, member, GearSlot.RIGHT_RING).is_acquired
        with pytest.raises(ValidationError):
            tracker.loot.assign_loot(member.member_id, 1, RING)

    def test_left_ring_drop_is_stored_as_right_ring(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(
            alice.member_id, 1, DropDescriptor(slot=GearSlot.LEFT_RING)
        )

        assert assignment.slot == GearSlot.RIGHT_RING
        assert assignment.acquired_slot == GearSlot.LEFT_RING

    def test_armor_material_fills_body_then_legs(self, tracker, alice, week):
        first = tracker.loot.assign_loot(alice.member_id, 3, ARMOR_MATERIAL)
        tracker.weeks.start_next()
        second = tracker.loot.assign_loot(alice.member_id, 3, ARMOR_MATERIAL)

        assert first.slot is None
        assert first.acquired_slot == GearSlot.BODY
        assert second.acquired_slot == GearSlot.LEGS
        assert state(tracker, alice, GearSlot.LEGS).upgrade_material_acquired
        assert not state(tracker, alice, GearSlot.LEGS).is_acquired

    def test_accessory_material_fills_ears_first(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, ACCESSORY_MATERIAL)
        assert assignment.acquired_slot == GearSlot.EARS

    def test_material_without_tome_items(self, tracker, week):
        member = tracker.members.create("Raider")
        tracker.members.set_bis_link(
            member.member_id, SpecType.MAIN_SPEC, MAIN_LINK, [raid(GearSlot.BODY)]
        )

        with pytest.raises(ValidationError):
            tracker.loot.assign_loot(member.member_id, 3, ARMOR_MATERIAL)


class TestUndo:
    def test_reverts_progress(self, tracker, alice, week, events):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)

        tracker.loot.undo(assignment.assignment_id)
        tracker.notifier.drain()

        assert not state(tracker, alice, GearSlot.HEAD).is_acquired
        assert tracker.assignments.list() == []
        assert sorted(e.kind.value for e in events) == ["AssignmentCreated", "AssignmentRemoved"]

    def test_reverts_material(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(alice.member_id, 3, ARMOR_MATERIAL)
        tracker.loot.undo(assignment.assignment_id)

        assert not state(tracker, alice, GearSlot.BODY).upgrade_material_acquired

    def test_deleted_member(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        tracker.members.delete(alice.member_id)

        removed = tracker.loot.undo(assignment.assignment_id)
        assert removed.assignment_id == assignment.assignment_id

    def test_link_switched_since(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        tracker.members.set_bis_link(
            alice.member_id, SpecType.MAIN_SPEC, ALT_LINK, [raid(GearSlot.WEAPON)]
        )

        tracker.loot.undo(assignment.assignment_id)

        assert state(tracker, alice, GearSlot.HEAD).is_acquired
        assert tracker.assignments.list() == []

    def test_unknown(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.loot.undo("missing")

    def test_concurrent_undo_removes_once(self, tracker, store, alice, week, events, monkeypatch):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        tracker.notifier.drain()
        events.clear()

        both_read = threading.Barrier(2)
        read_assignment = store.get_assignment

        def read_together(assignment_id):
            found = read_assignment(assignment_id)
            both_read.wait(timeout=5)
            return found

        monkeypatch.setattr(store, "get_assignment", read_together)
        errors = []

        def undo():
            try:
                tracker.loot.undo(assignment.assignment_id)
            except NotFoundError as e:
                errors.append(e)

        threads = [threading.Thread(target=undo) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        tracker.notifier.drain()

        assert len(errors) == 1
        assert [e.kind for e in events] == [EventKind.ASSIGNMENT_REMOVED]
        assert not state(tracker, alice, GearSlot.HEAD).is_acquired


class TestReassign:
    def test_moves_progress(self, tracker, alice, bob, week, events):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)

        corrected = tracker.loot.reassign(
            assignment.assignment_id, bob.member_id, SpecType.MAIN_SPEC
        )
        tracker.notifier.drain()

        assert corrected.assignment_id == assignment.assignment_id
        assert corrected.member_id == bob.member_id
        assert not state(tracker, alice, GearSlot.HEAD).is_acquired
        assert state(tracker, bob, GearSlot.HEAD).is_acquired
        # Deliveries run on a pool, so arrival order is not fixed
        removed = [e.member_id for e in events if e.kind == EventKind.ASSIGNMENT_REMOVED]
        created = [e.member_id for e in events if e.kind == EventKind.ASSIGNMENT_CREATED]
        assert removed == [alice.member_id]
        assert sorted(created) == sorted([alice.member_id, bob.member_id])

    def test_to_extra(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)

        corrected = tracker.loot.reassign(
            assignment.assignment_id, alice.member_id, SpecType.EXTRA
        )

        assert corrected.acquired_slot is None
        assert not state(tracker, alice, GearSlot.HEAD).is_acquired

    def test_failure_restores_previous_recipient(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        bare = tracker.members.create("Bare")

        with pytest.raises(ValidationError):
            tracker.loot.reassign(assignment.assignment_id, bare.member_id, SpecType.MAIN_SPEC)

        assert state(tracker, alice, GearSlot.HEAD).is_acquired
        assert tracker.assignments.get(assignment.assignment_id).member_id == alice.member_id


class TestDeleteWeek:
    def test_reverts_every_assignment(self, tracker, alice, bob, week):
        tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        tracker.loot.assign_loot(bob.member_id, 4, DropDescriptor.gear(GearSlot.WEAPON))

        removed = tracker.loot.delete_week(week.week_number)

        assert len(removed) == 2
        assert not state(tracker, alice, GearSlot.HEAD).is_acquired
        assert not state(tracker, bob, GearSlot.WEAPON).is_acquired
        assert tracker.weeks.get_current() is None

    def test_unknown_week(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.loot.delete_week(3)


class TestReads:
    def test_history_newest_week_first(self, tracker, alice, bob, week):
        tracker.loot.assign_loot(alice.member_id, 4, DropDescriptor.gear(GearSlot.WEAPON))
        tracker.loot.assign_loot(bob.member_id, 2, HEAD)
        tracker.weeks.start_next()
        tracker.loot.assign_loot(bob.member_id, 1, DropDescriptor.gear(GearSlot.NECK))

        history = tracker.loot.history()

        assert [w["week_number"] for w in history] == [2, 1]
        assert history[0]["is_current"]
        assert [a["floor_number"] for a in history[1]["assignments"]] == [2, 4]
        assert history[1]["assignments"][0]["member_name"] == "Bob"

    def test_history_names_deleted_members_unknown(self, tracker, alice, week):
        tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        tracker.members.delete(alice.member_id)

        history = tracker.loot.history(week.week_number)
        assert history[0]["assignments"][0]["member_name"] == "Unknown"

    def test_extra_counts(self, tracker, alice, bob, week):
        weapon = DropDescriptor.gear(GearSlot.WEAPON)
        tracker.loot.assign_loot(alice.member_id, 4, weapon, SpecType.EXTRA)
        tracker.weeks.start_next()
        tracker.loot.assign_loot(alice.member_id, 4, weapon, SpecType.EXTRA)
        tracker.weeks.start_next()
        tracker.loot.assign_loot(bob.member_id, 4, weapon)

        assert tracker.loot.extra_counts(weapon) == {alice.member_id: 2}
        assert tracker.loot.extra_counts(HEAD) == {}

    def test_loot_board(self, tracker, alice, week):
        assignment = tracker.loot.assign_loot(alice.member_id, 2, HEAD)

        board = {status.drop: status for status in tracker.loot.loot_board(2)}

        assert set(board) == {
            HEAD,
            DropDescriptor.gear(GearSlot.HAND),
            DropDescriptor.gear(GearSlot.FEET),
            ACCESSORY_MATERIAL,
        }
        assert board[HEAD].assignment.assignment_id == assignment.assignment_id
        assert board[HEAD].eligibility.bucket == SpecType.EXTRA
        assert not board[DropDescriptor.gear(GearSlot.HAND)].is_assigned
        assert board[DropDescriptor.gear(GearSlot.HAND)].eligibility.candidate_ids == [
            alice.member_id
        ]

    def test_loot_board_without_current_week(self, tracker, alice):
        board = tracker.loot.loot_board(4)
        assert [status.is_assigned for status in board] == [False]


class TestRaidNight:
    def test_full_floor_clear(self, tracker, alice, bob, week, events):
        """Clear floor 2, fix a mistake, and read it back."""
        head = tracker.loot.assign_loot(alice.member_id, 2, HEAD)
        hand = tracker.loot.assign_loot(alice.member_id, 2, DropDescriptor.gear(GearSlot.HAND))
        tracker.loot.assign_loot(bob.member_id, 2, DropDescriptor.gear(GearSlot.FEET))
        tracker.loot.assign_loot(bob.member_id, 2, ACCESSORY_MATERIAL)

        # Hand should have gone to Bob
        tracker.loot.reassign(hand.assignment_id, bob.member_id, SpecType.MAIN_SPEC)

        result = tracker.eligibility.resolve(2, HEAD)
        assert result.candidate_ids == [bob.member_id]
        assert all(status.is_assigned for status in tracker.loot.loot_board(2))

        tracker.loot.undo(head.assignment_id)
        tracker.notifier.drain()

        assert set(tracker.eligibility.resolve(2, HEAD).candidate_ids) == {
            alice.member_id,
            bob.member_id,
        }
        assert not state(tracker, alice, GearSlot.HAND).is_acquired
        assert state(tracker, bob, GearSlot.HAND).is_acquired
        assert state(tracker, bob, GearSlot.EARS).upgrade_material_acquired
        assert len(tracker.loot.history()[0]["assignments"]) == 3
        assert len(events) == 7
        assert not any(e.kind == EventKind.ACQUISITION_CHANGED for e in events)

    def test_single_member_scenario(self, tracker, events):
        member = tracker.members.create("A")
        tracker.members.set_bis_link(
            member.member_id, SpecType.MAIN_SPEC, MAIN_LINK, [raid(GearSlot.HEAD)]
        )
        tracker.weeks.create(1)
        tracker.weeks.set_current(1)

        tracker.loot.assign_loot(member.member_id, 2, HEAD, SpecType.MAIN_SPEC)
        with pytest.raises(ConflictError):
            tracker.loot.assign_loot(member.member_id, 2, HEAD, SpecType.MAIN_SPEC)
        tracker.notifier.drain()

        assert state(tracker, member, GearSlot.HEAD).is_acquired
        assert len(tracker.assignments.list_by_floor_and_week(2, 1)) == 1
        assert [e.kind for e in events] == [EventKind.ASSIGNMENT_CREATED]

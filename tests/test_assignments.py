"""
Tests for the assignment ledger.
"""

import threading

import pytest

from models.enums import GearSlot, SpecType
from models.loot import LootAssignment
from utils.errors import ConflictError, NotFoundError, ValidationError


def assignment(member_id, floor=2, week=1, slot=GearSlot.HEAD, **fields):
    return LootAssignment(
        floor_number=floor, week_number=week, member_id=member_id, slot=slot, **fields
    )


def material(member_id, floor=3, week=1, armor=True):
    return LootAssignment(
        floor_number=floor,
        week_number=week,
        member_id=member_id,
        is_upgrade_material=True,
        is_armor_material=armor,
    )


class TestCreate:
    def test_duplicate_drop_reports_holder(self, tracker, week):
        first = tracker.assignments.create(assignment("a"))

        with pytest.raises(ConflictError) as exc:
            tracker.assignments.create(assignment("b"))

        assert exc.value.conflicting_id == first.assignment_id
        assert exc.value.details == {"conflicting_id": first.assignment_id}

    def test_other_floor_week_or_slot_is_free(self, tracker, week):
        tracker.weeks.create(2)
        tracker.assignments.create(assignment("a"))

        tracker.assignments.create(assignment("a", slot=GearSlot.HAND))
        tracker.assignments.create(assignment("a", week=2))
        tracker.assignments.create(assignment("a", floor=1, slot=GearSlot.EARS))

        assert len(tracker.assignments.list()) == 4

    def test_materials_without_slot_collide(self, tracker, week):
        first = tracker.assignments.create(material("a"))

        with pytest.raises(ConflictError) as exc:
            tracker.assignments.create(material("b"))
        assert exc.value.conflicting_id == first.assignment_id

        tracker.assignments.create(material("b", armor=False))

    def test_rings_share_one_key(self, tracker, week):
        tracker.assignments.create(assignment("a", floor=1, slot=GearSlot.LEFT_RING))

        with pytest.raises(ConflictError):
            tracker.assignments.create(assignment("b", floor=1, slot=GearSlot.RIGHT_RING))

    def test_left_ring_is_stored_as_right_ring(self, tracker, week):
        created = tracker.assignments.create(assignment("a", floor=1, slot=GearSlot.LEFT_RING))
        assert created.slot == GearSlot.RIGHT_RING

    def test_missing_week(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.assignments.create(assignment("a", week=7))

    def test_material_with_slot_is_invalid(self, tracker, week):
        with pytest.raises(ValidationError):
            tracker.assignments.create(
                assignment("a", slot=GearSlot.BODY, is_upgrade_material=True)
            )

    def test_concurrent_creates_admit_one(self, tracker, week):
        workers = 8
        barrier = threading.Barrier(workers)
        created, conflicts = [], []

        def attempt(index):
            barrier.wait()
            try:
                created.append(tracker.assignments.create(assignment(f"m{index}")))
            except ConflictError as e:
                conflicts.append(e)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(created) == 1
        assert len(conflicts) == workers - 1
        assert {e.conflicting_id for e in conflicts} == {created[0].assignment_id}


class TestQueries:
    def test_find_conflict_matches_missing_slot(self, tracker, week):
        held = tracker.assignments.create(material("a"))

        found = tracker.assignments.find_conflict(3, 1, None, True, True)
        assert found.assignment_id == held.assignment_id
        assert tracker.assignments.find_conflict(3, 1, None, True, False) is None

    def test_list_by_week_orders_by_floor(self, tracker, week):
        tracker.assignments.create(assignment("a", floor=3, slot=GearSlot.BODY))
        tracker.assignments.create(assignment("a", floor=1, slot=GearSlot.NECK))
        tracker.assignments.create(assignment("a", floor=2))

        floors = [a.floor_number for a in tracker.assignments.list_by_week(1)]
        assert floors == [1, 2, 3]


class TestUndoAndUpdate:
    def test_undo_frees_the_drop(self, tracker, week):
        first = tracker.assignments.create(assignment("a"))

        removed = tracker.assignments.undo(first.assignment_id)
        second = tracker.assignments.create(assignment("b"))

        assert removed.assignment_id == first.assignment_id
        assert second.member_id == "b"

    def test_undo_unknown(self, tracker):
        with pytest.raises(NotFoundError):
            tracker.assignments.undo("missing")

    def test_update_recipient_keeps_key(self, tracker, week):
        first = tracker.assignments.create(assignment("a"))

        updated = tracker.assignments.update(
            first.model_copy(update={"member_id": "b", "spec_type": SpecType.OFF_SPEC})
        )

        assert updated.member_id == "b"
        assert tracker.assignments.get(first.assignment_id).spec_type == SpecType.OFF_SPEC

    def test_update_onto_taken_drop(self, tracker, week):
        head = tracker.assignments.create(assignment("a"))
        hand = tracker.assignments.create(assignment("a", slot=GearSlot.HAND))

        with pytest.raises(ConflictError) as exc:
            tracker.assignments.update(hand.model_copy(update={"slot": GearSlot.HEAD}))
        assert exc.value.conflicting_id == head.assignment_id

    def test_stale_delete_keeps_new_holder(self, tracker, store, week):
        first = tracker.assignments.create(assignment("a"))
        tracker.assignments.undo(first.assignment_id)
        second = tracker.assignments.create(assignment("b"))

        with pytest.raises(NotFoundError):
            store.delete_assignment(first)

        holder = tracker.assignments.find_conflict(2, 1, GearSlot.HEAD, False, False)
        assert holder.assignment_id == second.assignment_id


class TestWeekDeletion:
    def test_create_racing_week_deletion_leaves_no_orphan(self, tracker, store, monkeypatch):
        tracker.weeks.create(1)
        read_week = store.get_week

        def read_then_delete(week_number):
            # The week is gone by the time the ledger inserts
            found = read_week(week_number)
            worker = threading.Thread(target=tracker.weeks.delete, args=(week_number,))
            worker.start()
            worker.join()
            return found

        monkeypatch.setattr(store, "get_week", read_then_delete)

        with pytest.raises(NotFoundError):
            tracker.assignments.create(assignment("a"))

        assert tracker.weeks.list() == []
        assert tracker.assignments.list() == []

    def test_insert_into_missing_week_is_rejected_by_store(self, store):
        with pytest.raises(NotFoundError):
            store.insert_assignment(assignment("a"))

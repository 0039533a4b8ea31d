"""
Tests for change notification fan-out.
"""

import threading

from models.enums import EventKind
from models.events import ChangeEvent
from services.notifier import ChangeNotifier


def event(member_id="m1"):
    return ChangeEvent(kind=EventKind.ASSIGNMENT_CREATED, member_id=member_id, week_number=1)


class TestChangeNotifier:
    def setup_method(self):
        self.notifier = ChangeNotifier(max_workers=2)

    def teardown_method(self):
        self.notifier.close()

    def test_every_subscriber_gets_every_event(self):
        first, second = [], []
        self.notifier.subscribe(first.append)
        self.notifier.subscribe(second.append)

        self.notifier.publish(event("a"))
        self.notifier.publish(event("b"))

        assert self.notifier.drain(timeout=5)
        assert sorted(e.member_id for e in first) == ["a", "b"]
        assert sorted(e.member_id for e in second) == ["a", "b"]

    def test_failing_subscriber_is_isolated(self):
        received = []

        def broken(_):
            raise RuntimeError("subscriber down")

        self.notifier.subscribe(broken)
        self.notifier.subscribe(received.append)

        self.notifier.publish(event())

        assert self.notifier.drain(timeout=5)
        assert len(received) == 1

    def test_unsubscribe(self):
        received = []
        unsubscribe = self.notifier.subscribe(received.append)

        unsubscribe()
        unsubscribe()
        self.notifier.publish(event())

        assert self.notifier.drain(timeout=5)
        assert received == []

    def test_slow_subscriber_does_not_block_publish(self):
        release = threading.Event()
        self.notifier.subscribe(lambda _: release.wait(5))

        self.notifier.publish(event())

        assert not self.notifier.drain(timeout=0.05)
        release.set()
        assert self.notifier.drain(timeout=5)

    def test_publish_after_close_is_dropped(self):
        received = []
        self.notifier.subscribe(received.append)
        self.notifier.close()

        self.notifier.publish(event())

        assert received == []

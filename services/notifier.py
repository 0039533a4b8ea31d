"""
Change notification fan-out.

Subscribers are called on a small worker pool after a mutation commits.
Delivery is best effort: a slow or failing subscriber never blocks or fails
the write that published the event, and nothing is persisted or replayed.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, List, Set

from models.events import ChangeEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[ChangeEvent], None]


class ChangeNotifier:
    def __init__(self, max_workers: int = 4):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="loot-notifier"
        )
        self._subscribers: List[Subscriber] = []
        self._pending: Set[Future] = set()
        self._lock = threading.RLock()
        self._closed = False

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for every future event.

        Returns:
            A function that removes the subscription; calling it twice is harmless
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            if self._closed:
                logger.warning("Dropping %s event, notifier is closed", event.kind.value)
                return
            subscribers = list(self._subscribers)
            for callback in subscribers:
                future = self._executor.submit(self._deliver, callback, event)
                self._pending.add(future)
                future.add_done_callback(self._forget)

    def drain(self, timeout: float | None = None) -> bool:
        """
        Wait for queued deliveries.

        Returns:
            True if every delivery finished within the timeout
        """
        with self._lock:
            pending = list(self._pending)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    @staticmethod
    def _deliver(callback: Subscriber, event: ChangeEvent) -> None:
        try:
            callback(event)
        except Exception:
            logger.exception(
                "Subscriber %r failed on %s event",
                callback,
                event.kind.value,
                extra={"member_id": event.member_id, "week_number": event.week_number},
            )

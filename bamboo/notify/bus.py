from __future__ import annotations

import logging
import queue
import threading
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from typing import Optional

from ..metrics.registry import BAMBOO_NOTIFICATIONS_TOTAL

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[frozenset[str]], None]

_CANCELLED = object()


def _as_table_set(tables: Iterable[str] | str) -> frozenset[str]:
    if isinstance(tables, str):
        return frozenset((tables,))
    return frozenset(tables)


class Subscription:
    """
    A filtered view of a ChangeBus.

    Only change sets that share at least one table with ``tables`` are
    delivered. Without a handler, deliveries are queued and read in publish
    order by iterating the subscription (blocks until the next change) or
    through ``get()``. With a handler, the handler is called synchronously
    inside ``publish()`` instead.

    The subscription stays registered until ``cancel()`` is called, or the
    ``with`` block exits:

        with bus.subscribe({"users"}) as changes:
            for changed_tables in changes:
                ...
    """

    def __init__(
        self,
        bus: "ChangeBus",
        tables: frozenset[str],
        handler: Optional[ChangeHandler] = None,
    ) -> None:
        self.tables = tables
        self._bus = bus
        self._handler = handler
        self._queue: queue.Queue = queue.Queue()
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def matches(self, changed_tables: frozenset[str]) -> bool:
        return not self.tables.isdisjoint(changed_tables)

    def _deliver(self, changed_tables: frozenset[str]) -> None:
        if self._handler is not None:
            self._handler(changed_tables)
        else:
            self._queue.put(changed_tables)

    def get(self, block: bool = True, timeout: Optional[float] = None) -> Optional[frozenset[str]]:
        """
        Return the next delivered change set.

        Returns None once the subscription is cancelled and every change
        queued before the cancel has been read.

        Raises:
            queue.Empty: If nothing arrives within ``timeout`` (or immediately
                when ``block`` is False)
            RuntimeError: If the subscription was created with a handler
        """
        if self._handler is not None:
            raise RuntimeError("Handler subscriptions deliver through their callback and cannot be read")
        item = self._queue.get(block=block, timeout=timeout)
        if item is _CANCELLED:
            # keep the marker so later reads return immediately as well
            self._queue.put(_CANCELLED)
            return None
        return item

    def get_nowait(self) -> Optional[frozenset[str]]:
        return self.get(block=False)

    def cancel(self) -> None:
        """Unregister from the bus. Safe to call more than once."""
        if self._cancelled:
            return
        self._cancelled = True
        self._bus._unsubscribe(self)
        self._queue.put(_CANCELLED)

    def __iter__(self) -> Iterator[frozenset[str]]:
        return self

    def __next__(self) -> frozenset[str]:
        item = self.get()
        if item is None:
            raise StopIteration
        return item

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()
        return False


class ChangeBus:
    """
    In-process broadcast of affected-table sets.

    Every subscriber owns its own queue; ``publish()`` hands the change set to
    each matching subscriber before returning. Publishes are serialized so each
    subscriber sees changes in publish order. Subscribing, cancelling and
    publishing are safe from any thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._publish_lock = threading.Lock()
        # change sets published by handlers while this thread is delivering
        self._local = threading.local()
        self._subscriptions: list[Subscription] = []

    def subscribe(
        self,
        tables: Iterable[str] | str,
        handler: Optional[ChangeHandler] = None,
    ) -> Subscription:
        """
        Register interest in changes to any of ``tables``.

        Args:
            tables: Table names to watch
            handler: Optional callback invoked synchronously on each matching
                     publish. Handler exceptions are logged, not raised.

        Returns:
            An active Subscription

        Raises:
            ValueError: If ``tables`` is empty
        """
        table_set = _as_table_set(tables)
        if not table_set:
            raise ValueError("Cannot subscribe to an empty set of tables")

        subscription = Subscription(self, table_set, handler)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug("Subscribed to changes of %s", sorted(table_set))
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            try:
                self._subscriptions.remove(subscription)
            except ValueError:
                return
        logger.debug("Unsubscribed from changes of %s", sorted(subscription.tables))

    def publish(self, affected_tables: Iterable[str] | str) -> None:
        """
        Broadcast one change set to every subscriber whose tables intersect it.

        A handler publishing from inside ``publish()`` does not deliver right
        away: its change set is queued and delivered once the current one has
        reached every subscriber, so all subscribers see publish order.

        Raises:
            ValueError: If ``affected_tables`` is empty
        """
        changed = _as_table_set(affected_tables)
        if not changed:
            raise ValueError("Cannot publish an empty set of affected tables")

        pending = getattr(self._local, "pending", None)
        if pending is not None:
            pending.append(changed)
            return

        with self._publish_lock:
            pending = self._local.pending = deque([changed])
            try:
                while pending:
                    self._broadcast(pending.popleft())
            finally:
                self._local.pending = None

    def _broadcast(self, changed: frozenset[str]) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)

        BAMBOO_NOTIFICATIONS_TOTAL.inc()
        logger.debug(
            "Publishing change of %s to %d subscriber(s)",
            sorted(changed),
            len(subscriptions),
        )
        for subscription in subscriptions:
            if not subscription.matches(changed):
                continue
            try:
                subscription._deliver(changed)
            except Exception:
                # The write is already committed; a failing observer must not undo that.
                logger.exception(
                    "Change handler for %s failed on %s",
                    sorted(subscription.tables),
                    sorted(changed),
                )

    def observe(self, tables: Iterable[str] | str) -> Iterator[frozenset[str]]:
        """
        Cold stream of change sets.

        Nothing is registered until iteration starts; every iteration gets its
        own subscription, cancelled when the generator is closed.
        """
        with self.subscribe(tables) as subscription:
            yield from subscription

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Iterable
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

from ..config import RelayConfig
from ..errors import RelayError
from .bus import ChangeBus, Subscription

logger = logging.getLogger(__name__)


class RedisRelay:
    """
    Bridges ChangeBus instances living in different processes through a Redis
    pub/sub channel.

    Outbound: every local change touching ``tables`` is published to the
    channel as ``{"origin": ..., "tables": [...]}``.
    Inbound: ``poll()`` / ``run()`` read the channel and republish foreign
    change sets into the local bus. Messages carrying our own origin are
    dropped, and changes republished from Redis are not sent back out.

    Delivery is best effort (Redis pub/sub has no persistence); a process
    that is not listening when a change is published never sees it.

    Usage:
        relay = RedisRelay(redis_client, storage.bus, {"users", "tweets"})
        relay.start()
        threading.Thread(target=relay.run, daemon=True).start()
        ...
        relay.stop()
        relay.close()
    """

    def __init__(
        self,
        redis: Redis,
        bus: ChangeBus,
        tables: Iterable[str],
        config: Optional[RelayConfig] = None,
    ) -> None:
        self.redis = redis
        self.bus = bus
        self.tables = frozenset(tables)
        self.config = config or RelayConfig()
        self.origin = uuid.uuid4().hex
        self._pubsub = None
        self._subscription: Subscription | None = None
        self._inbound = threading.local()
        self._stopping = threading.Event()

    def start(self) -> None:
        """
        Subscribe to the Redis channel and to local changes.

        Raises:
            RelayError: If the Redis subscription fails
            RuntimeError: If already started
        """
        if self._pubsub is not None:
            raise RuntimeError("RedisRelay is already started")
        try:
            pubsub = self.redis.pubsub(ignore_subscribe_messages=True)
            pubsub.subscribe(self.config.channel)
        except RedisError as exc:
            raise RelayError(f"Failed to subscribe to {self.config.channel!r}: {exc}") from exc
        self._pubsub = pubsub
        self._subscription = self.bus.subscribe(self.tables, handler=self._forward)
        logger.info("Relaying changes of %s through %s", sorted(self.tables), self.config.channel)

    def _forward(self, changed_tables: frozenset[str]) -> None:
        if getattr(self._inbound, "active", False):
            return
        payload = json.dumps({"origin": self.origin, "tables": sorted(changed_tables)})
        try:
            self.redis.publish(self.config.channel, payload)
        except RedisError as exc:
            raise RelayError(f"Failed to publish change to {self.config.channel!r}: {exc}") from exc

    def _decode(self, data) -> Optional[frozenset[str]]:
        try:
            if isinstance(data, bytes):
                data = data.decode("utf-8")
            payload = json.loads(data)
            origin = payload["origin"]
            tables = payload["tables"]
            if not isinstance(tables, list) or not all(isinstance(t, str) for t in tables):
                raise ValueError(f"tables must be a list of strings, got {tables!r}")
            tables = frozenset(tables)
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Dropping malformed change message on %s: %s", self.config.channel, exc)
            return None
        if origin == self.origin or not tables:
            return None
        return tables

    def poll(self, timeout: Optional[float] = None) -> Optional[frozenset[str]]:
        """
        Read at most one message and republish it locally.

        Args:
            timeout: Seconds to wait; defaults to config.poll_timeout_s

        Returns:
            The republished change set, or None if nothing (foreign) arrived

        Raises:
            RelayError: If Redis fails or the relay was not started
        """
        if self._pubsub is None:
            raise RelayError("RedisRelay.poll() called before start()")
        actual_timeout = timeout if timeout is not None else self.config.poll_timeout_s
        try:
            message = self._pubsub.get_message(timeout=actual_timeout)
        except RedisError as exc:
            raise RelayError(f"Failed to read from {self.config.channel!r}: {exc}") from exc

        if message is None or message.get("type") != "message":
            return None
        tables = self._decode(message.get("data"))
        if tables is None:
            return None

        self._inbound.active = True
        try:
            self.bus.publish(tables)
        finally:
            self._inbound.active = False
        return tables

    def run(self) -> None:
        """Poll until ``stop()`` is called. Redis failures propagate as RelayError."""
        while not self._stopping.is_set():
            self.poll()

    def stop(self) -> None:
        self._stopping.set()

    def close(self) -> None:
        """Stop relaying in both directions and release the pub/sub connection."""
        self.stop()
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._pubsub is not None:
            try:
                self._pubsub.close()
            finally:
                self._pubsub = None

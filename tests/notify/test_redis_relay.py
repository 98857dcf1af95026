from __future__ import annotations

import json
import logging
import queue
from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from bamboo.config import RelayConfig
from bamboo.errors import RelayError
from bamboo.notify.bus import ChangeBus
from bamboo.notify.redis_relay import RedisRelay


@pytest.fixture
def redis_client() -> MagicMock:
    client = MagicMock()
    client.pubsub.return_value.get_message.return_value = None
    return client


@pytest.fixture
def relay(redis_client: MagicMock, bus: ChangeBus) -> Iterator[RedisRelay]:
    relay = RedisRelay(redis_client, bus, {"users", "tweets"}, RelayConfig(channel="test:changes"))
    relay.start()
    yield relay
    relay.close()


def _message(origin: str, tables: list[str]) -> dict:
    payload = json.dumps({"origin": origin, "tables": tables}).encode("utf-8")
    return {"type": "message", "channel": b"test:changes", "data": payload}


class TestOutbound:
    """Tests for local changes going out to Redis."""

    def test_start_subscribes_to_channel(self, relay: RedisRelay, redis_client: MagicMock) -> None:
        redis_client.pubsub.assert_called_once_with(ignore_subscribe_messages=True)
        redis_client.pubsub.return_value.subscribe.assert_called_once_with("test:changes")

    def test_local_change_is_published_as_json(
        self, relay: RedisRelay, redis_client: MagicMock, bus: ChangeBus
    ) -> None:
        bus.publish({"users", "audit"})

        redis_client.publish.assert_called_once()
        channel, payload = redis_client.publish.call_args.args
        assert channel == "test:changes"
        assert json.loads(payload) == {"origin": relay.origin, "tables": ["audit", "users"]}

    def test_unrelated_change_is_not_published(
        self, relay: RedisRelay, redis_client: MagicMock, bus: ChangeBus
    ) -> None:
        bus.publish({"audit"})

        redis_client.publish.assert_not_called()

    def test_start_twice_raises(self, relay: RedisRelay) -> None:
        with pytest.raises(RuntimeError):
            relay.start()

    def test_subscribe_failure_raises_relay_error(self, redis_client: MagicMock, bus: ChangeBus) -> None:
        redis_client.pubsub.return_value.subscribe.side_effect = RedisConnectionError("down")
        relay = RedisRelay(redis_client, bus, {"users"})

        with pytest.raises(RelayError) as exc_info:
            relay.start()

        assert isinstance(exc_info.value.__cause__, RedisConnectionError)
        assert bus.subscriber_count() == 0


class TestInbound:
    """Tests for changes arriving from Redis."""

    def test_foreign_change_is_republished_locally(
        self, relay: RedisRelay, redis_client: MagicMock, bus: ChangeBus
    ) -> None:
        redis_client.pubsub.return_value.get_message.return_value = _message("other", ["users"])

        with bus.subscribe({"users"}) as changes:
            tables = relay.poll(timeout=0.1)

            assert tables == frozenset({"users"})
            assert changes.get_nowait() == frozenset({"users"})

        redis_client.pubsub.return_value.get_message.assert_called_once_with(timeout=0.1)

    def test_republished_change_is_not_echoed_back(
        self, relay: RedisRelay, redis_client: MagicMock
    ) -> None:
        redis_client.pubsub.return_value.get_message.return_value = _message("other", ["users"])

        relay.poll()

        redis_client.publish.assert_not_called()

    def test_own_messages_are_ignored(
        self, relay: RedisRelay, redis_client: MagicMock, bus: ChangeBus
    ) -> None:
        redis_client.pubsub.return_value.get_message.return_value = _message(relay.origin, ["users"])

        with bus.subscribe({"users"}) as changes:
            assert relay.poll() is None
            with pytest.raises(queue.Empty):
                changes.get_nowait()

    @pytest.mark.parametrize(
        "data",
        [
            b"not json",
            b"\xff\xfe",
            b'{"origin": "other", "tables": "users"}',
            b'{"origin": "other", "tables": ["users", 1]}',
            b'{"origin": "other"}',
            b'["users"]',
        ],
    )
    def test_malformed_message_is_dropped(
        self,
        relay: RedisRelay,
        redis_client: MagicMock,
        bus: ChangeBus,
        caplog: pytest.LogCaptureFixture,
        data: bytes,
    ) -> None:
        """Test that undecodable or ill-typed payloads are logged and never reach the bus."""
        redis_client.pubsub.return_value.get_message.return_value = {"type": "message", "data": data}

        with bus.subscribe({"users", "u", "s"}) as changes:
            with caplog.at_level(logging.WARNING, logger="bamboo.notify.redis_relay"):
                assert relay.poll() is None
            with pytest.raises(queue.Empty):
                changes.get_nowait()
        assert any("malformed" in record.getMessage() for record in caplog.records)

    def test_run_survives_malformed_message(self, relay: RedisRelay, redis_client: MagicMock) -> None:
        messages = iter([{"type": "message", "data": b"\xff"}, _message("other", ["users"])])

        def read(timeout: float):
            message = next(messages, None)
            if message is None:
                relay.stop()
            return message

        redis_client.pubsub.return_value.get_message.side_effect = read

        relay.run()

        assert redis_client.pubsub.return_value.get_message.call_count == 3

    def test_non_message_types_are_ignored(self, relay: RedisRelay, redis_client: MagicMock) -> None:
        redis_client.pubsub.return_value.get_message.return_value = {"type": "subscribe", "data": 1}

        assert relay.poll() is None

    def test_poll_uses_configured_timeout(self, relay: RedisRelay, redis_client: MagicMock) -> None:
        relay.poll()

        redis_client.pubsub.return_value.get_message.assert_called_once_with(timeout=1.0)

    def test_poll_before_start_raises(self, redis_client: MagicMock, bus: ChangeBus) -> None:
        relay = RedisRelay(redis_client, bus, {"users"})

        with pytest.raises(RelayError):
            relay.poll()

    def test_redis_failure_while_reading_raises_relay_error(
        self, relay: RedisRelay, redis_client: MagicMock
    ) -> None:
        redis_client.pubsub.return_value.get_message.side_effect = RedisConnectionError("gone")

        with pytest.raises(RelayError):
            relay.poll()

    def test_run_returns_after_stop(self, relay: RedisRelay, redis_client: MagicMock) -> None:
        def stop_on_read(timeout: float) -> None:
            relay.stop()
            return None

        redis_client.pubsub.return_value.get_message.side_effect = stop_on_read

        relay.run()

        assert redis_client.pubsub.return_value.get_message.call_count == 1


class TestClose:
    def test_close_stops_forwarding_and_releases_pubsub(
        self, redis_client: MagicMock, bus: ChangeBus
    ) -> None:
        relay = RedisRelay(redis_client, bus, {"users"})
        relay.start()
        relay.close()

        bus.publish({"users"})

        redis_client.publish.assert_not_called()
        redis_client.pubsub.return_value.close.assert_called_once()
        assert bus.subscriber_count() == 0


class TestRelayConfig:
    def test_defaults(self) -> None:
        config = RelayConfig()
        assert config.channel == "bamboo:changes"
        assert config.poll_timeout_s == 1.0

    @pytest.mark.parametrize("kwargs", [{"channel": ""}, {"poll_timeout_s": 0}, {"poll_timeout_s": -1}])
    def test_invalid_values_raise(self, kwargs: dict) -> None:
        with pytest.raises(ValueError):
            RelayConfig(**kwargs)

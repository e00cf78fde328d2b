"""Tests for rankbridge.bridge.relay: bus command handling."""

from __future__ import annotations

import asyncio

import pytest
from structlog.testing import capture_logs

from rankbridge.bridge.correlator import RankRequestCorrelator
from rankbridge.bridge.relay import ExchangeRelay
from rankbridge.core.errors import BusError, ErrorCategory, PersistenceError
from tests._support import ACCOUNT_ID, GLOBAL_ID, OTHER_VOICE_ID, VOICE_ID, settle


@pytest.fixture
def mapped(platform, store):
    store.seed(GLOBAL_ID, VOICE_ID, active=True)
    platform.auto_respond = True
    return store


class TestRankQueries:
    @pytest.mark.asyncio
    async def test_request_update(self, platform, bus, relay, mapped):
        platform.ranks[ACCOUNT_ID] = 12
        await relay.start()

        await bus.publish(f"request_update {VOICE_ID}")

        assert bus.history == [f"request_update {VOICE_ID}", f"update_rank {VOICE_ID} 12"]

    @pytest.mark.asyncio
    async def test_tick_query(self, platform, bus, relay, mapped):
        platform.ranks[ACCOUNT_ID] = 7
        await relay.start()

        await bus.publish(f"update_tick_get_rank {VOICE_ID}")

        assert bus.history[1:] == [f"update_tick_update_rank {VOICE_ID} 7"]

    @pytest.mark.asyncio
    async def test_unranked_replies_null(self, bus, relay, mapped):
        await relay.handle_message(f"request_update {VOICE_ID}")
        assert bus.history == [f"update_rank {VOICE_ID} null"]

    @pytest.mark.asyncio
    async def test_verb_case_insensitive(self, platform, bus, relay, mapped):
        platform.ranks[ACCOUNT_ID] = 3
        await relay.handle_message(f"REQUEST_UPDATE {VOICE_ID}")
        assert bus.history == [f"update_rank {VOICE_ID} 3"]

    @pytest.mark.asyncio
    async def test_concurrent_queries_share_one_lookup(self, platform, bus, relay, store):
        store.seed(GLOBAL_ID, VOICE_ID, active=True)

        first = asyncio.create_task(relay.handle_message(f"request_update {VOICE_ID}"))
        second = asyncio.create_task(relay.handle_message(f"update_tick_get_rank {VOICE_ID}"))
        await settle()
        platform.respond(ACCOUNT_ID, 16)
        await asyncio.gather(first, second)

        assert platform.profile_requests == [ACCOUNT_ID]
        assert bus.history == [
            f"update_rank {VOICE_ID} 16",
            f"update_tick_update_rank {VOICE_ID} 16",
        ]


class TestIgnored:
    @pytest.mark.asyncio
    async def test_unmapped_identity(self, platform, bus, relay, mapped):
        await relay.handle_message(f"request_update {OTHER_VOICE_ID}")
        assert bus.history == []
        assert platform.profile_requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message",
        [
            "",
            "request_update",
            "hello world",
            f"update_rank {VOICE_ID} 12",
            f"update_tick_update_rank {VOICE_ID} null",
        ],
    )
    async def test_non_requests(self, platform, bus, relay, mapped, message):
        await relay.handle_message(message)
        assert bus.history == []
        assert platform.profile_requests == []

    @pytest.mark.asyncio
    async def test_own_replies_do_not_loop(self, platform, bus, relay, mapped):
        await relay.start()
        await bus.publish(f"request_update {VOICE_ID}")
        assert len(bus.history) == 2
        assert platform.profile_requests == [ACCOUNT_ID]


class TestFailures:
    @pytest.mark.asyncio
    async def test_lookup_timeout_publishes_nothing(self, platform, store, bus):
        store.seed(GLOBAL_ID, VOICE_ID, active=True)
        corr = RankRequestCorrelator(platform, timeout=0.01)
        platform.on_profiles(corr.handle_profiles)
        relay = ExchangeRelay(bus, store, corr)

        with capture_logs() as logs:
            await relay.handle_message(f"request_update {VOICE_ID}")

        assert bus.history == []
        failures = [entry for entry in logs if entry["event"] == "rank_lookup_failed"]
        assert failures[0]["error_type"] == "UpstreamTimeoutError"

    @pytest.mark.asyncio
    async def test_request_failure_publishes_nothing(self, platform, bus, relay, mapped):
        platform.request_error = ConnectionError("coordinator gone")
        await relay.handle_message(f"request_update {VOICE_ID}")
        assert bus.history == []

    @pytest.mark.asyncio
    async def test_reply_publish_failure_is_logged(self, platform, bus, relay, mapped, monkeypatch):
        async def broken_publish(message: str) -> None:
            raise ConnectionError("bus down")

        monkeypatch.setattr(bus, "publish", broken_publish)

        with capture_logs() as logs:
            await relay.handle_message(f"request_update {VOICE_ID}")

        failures = [entry for entry in logs if entry["event"] == "rank_reply_failed"]
        assert failures[0]["error_type"] == "BusError"
        assert failures[0]["category"] == "BUS"
        assert failures[0]["context"] == {"voice_identity": VOICE_ID, "verb": "update_rank"}

    @pytest.mark.asyncio
    async def test_publish_rank_failure_raises_bus_error(self, bus, relay, monkeypatch):
        async def broken_publish(message: str) -> None:
            raise RuntimeError("not connected")

        monkeypatch.setattr(bus, "publish", broken_publish)

        with pytest.raises(BusError) as exc_info:
            await relay.publish_rank(VOICE_ID, 3)

        err = exc_info.value
        assert err.category is ErrorCategory.BUS
        assert err.retryable is True
        assert isinstance(err.cause, RuntimeError)
        assert err.context.voice_identity == VOICE_ID

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store, relay):
        store.fail_with = PersistenceError("database is locked")
        with pytest.raises(PersistenceError):
            await relay.handle_message(f"request_update {VOICE_ID}")


class TestSubscription:
    @pytest.mark.asyncio
    async def test_start_stop(self, bus, relay):
        assert not relay.running

        await relay.start()
        await relay.start()
        assert relay.running
        assert bus.subscription_count == 1

        await relay.stop()
        await relay.stop()
        assert not relay.running
        assert bus.subscription_count == 0

    @pytest.mark.asyncio
    async def test_stopped_relay_ignores_bus(self, platform, bus, relay, mapped):
        await relay.start()
        await relay.stop()

        await bus.publish(f"request_update {VOICE_ID}")

        assert bus.history == [f"request_update {VOICE_ID}"]
        assert platform.profile_requests == []

    @pytest.mark.asyncio
    async def test_publish_rank(self, bus, relay):
        await relay.publish_rank(VOICE_ID, None)
        assert bus.history == [f"update_rank {VOICE_ID} null"]

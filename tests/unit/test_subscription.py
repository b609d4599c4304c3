"""
Unit tests for the subscription channel.

Tests cover:
- Delivery of decoded entities to sync and async callbacks
- No delivery after unsubscribe
- Idempotent unsubscribe and transport release
- Callback failures not stopping the channel
- Closing while a callback is still running
- Bounded backlog with drop-on-overflow
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from sdk.skillchain_sdk.subscription import Subscription


class FakePublic:
    """Read handle that exposes the registered push callback."""

    def __init__(self):
        self.push = None
        self.release = AsyncMock()

    async def subscribe(self, callback):
        self.push = callback
        return self.release


async def drain():
    """Let the pump task process queued events."""
    for _ in range(5):
        await asyncio.sleep(0)


def raw(key="0x1", payload=b'{"name": "New Entity"}'):
    return {"entityKey": key, "payload": payload, "attributes": [], "createdAt": 1}


class TestSubscription:
    """Tests for Subscription."""

    @pytest.mark.asyncio
    async def test_delivers_decoded_entity(self):
        received = []
        public = FakePublic()
        subscription = Subscription(received.append)
        await subscription.start(public)

        public.push(raw())
        await drain()

        assert len(received) == 1
        assert received[0].entity_key == "0x1"
        assert received[0].payload == {"name": "New Entity"}
        await subscription.aclose()

    @pytest.mark.asyncio
    async def test_async_callback(self):
        received = []

        async def on_entity(entity):
            received.append(entity.entity_key)

        public = FakePublic()
        subscription = Subscription(on_entity)
        await subscription.start(public)

        public.push(raw("0xa"))
        public.push(raw("0xb"))
        await drain()

        assert received == ["0xa", "0xb"]
        await subscription.aclose()

    @pytest.mark.asyncio
    async def test_no_delivery_after_unsubscribe(self):
        callback = MagicMock()
        public = FakePublic()
        subscription = Subscription(callback)
        await subscription.start(public)

        public.push(raw("0xa"))
        subscription()
        public.push(raw("0xb"))
        await drain()

        callback.assert_not_called()
        assert subscription.closed

    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent(self):
        public = FakePublic()
        subscription = Subscription(MagicMock())
        await subscription.start(public)

        subscription.unsubscribe()
        subscription.unsubscribe()
        await subscription.aclose()
        await subscription.aclose()

        public.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_channel(self):
        calls = []

        def flaky(entity):
            calls.append(entity.entity_key)
            if len(calls) == 1:
                raise RuntimeError("callback bug")

        public = FakePublic()
        subscription = Subscription(flaky)
        await subscription.start(public)

        public.push(raw("0xa"))
        public.push(raw("0xb"))
        await drain()

        assert calls == ["0xa", "0xb"]
        await subscription.aclose()

    @pytest.mark.asyncio
    async def test_undecodable_event_dropped(self):
        received = []
        public = FakePublic()
        subscription = Subscription(received.append)
        await subscription.start(public)

        public.push({"payload": b"{}"})
        public.push(raw("0xgood"))
        await drain()

        assert [e.entity_key for e in received] == ["0xgood"]
        await subscription.aclose()

    @pytest.mark.asyncio
    async def test_release_error_swallowed(self):
        public = FakePublic()
        public.release = AsyncMock(side_effect=RuntimeError("socket gone"))
        subscription = Subscription(MagicMock())
        await subscription.start(public)

        await subscription.aclose()

        assert subscription.closed

    @pytest.mark.asyncio
    async def test_failed_start_raises(self):
        public = MagicMock()
        public.subscribe = AsyncMock(side_effect=ConnectionRefusedError("no socket"))
        subscription = Subscription(MagicMock())

        with pytest.raises(ConnectionRefusedError):
            await subscription.start(public)
        assert subscription.closed

    @pytest.mark.asyncio
    async def test_aclose_does_not_wait_for_slow_callback(self):
        """A stuck async callback is cancelled instead of blocking teardown."""
        started = asyncio.Event()

        async def slow(entity):
            started.set()
            await asyncio.sleep(3600)

        public = FakePublic()
        subscription = Subscription(slow)
        await subscription.start(public)

        public.push(raw())
        await asyncio.wait_for(started.wait(), timeout=1.0)
        await asyncio.wait_for(subscription.aclose(), timeout=1.0)

        assert subscription.closed
        public.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_backlog_overflow_dropped(self, caplog):
        received = []
        gate = asyncio.Event()

        async def blocked(entity):
            received.append(entity.entity_key)
            await gate.wait()

        public = FakePublic()
        subscription = Subscription(blocked, max_pending=2)
        await subscription.start(public)

        public.push(raw("0xa"))
        await drain()
        with caplog.at_level(logging.WARNING):
            public.push(raw("0xb"))
            public.push(raw("0xc"))
            public.push(raw("0xd"))
        gate.set()
        await drain()
        await drain()

        assert received == ["0xa", "0xb", "0xc"]
        assert "dropping event" in caplog.text
        await subscription.aclose()

    @pytest.mark.asyncio
    async def test_unsubscribe_with_full_backlog(self):
        gate = asyncio.Event()

        async def blocked(entity):
            await gate.wait()

        callback = AsyncMock(side_effect=blocked)
        public = FakePublic()
        subscription = Subscription(callback, max_pending=1)
        await subscription.start(public)

        public.push(raw("0xa"))
        await drain()
        public.push(raw("0xb"))

        subscription.unsubscribe()
        await asyncio.wait_for(subscription.aclose(), timeout=1.0)

        callback.assert_awaited_once()

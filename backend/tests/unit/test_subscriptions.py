"""Unit tests for the change feed and live subscriptions."""

import asyncio
from unittest.mock import MagicMock

import pytest

from violation_ledger.services.subscriptions import (
    ChangeFeed,
    Subscription,
    get_change_feed,
    reset_change_feed,
)


class Counter:
    """Fetch function returning how many times it has been called."""

    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.calls


class TestChangeFeed:
    def test_publish_notifies_collection_listeners(self):
        feed = ChangeFeed()
        violations_listener = MagicMock()
        complaints_listener = MagicMock()
        feed.add_listener("violations", violations_listener)
        feed.add_listener("complaints", complaints_listener)

        feed.publish("violations")

        violations_listener.assert_called_once_with()
        complaints_listener.assert_not_called()

    def test_remove_listener(self):
        feed = ChangeFeed()
        listener = MagicMock()
        feed.add_listener("violations", listener)
        feed.remove_listener("violations", listener)

        feed.publish("violations")

        listener.assert_not_called()
        assert feed.listener_count("violations") == 0

    def test_global_feed_reset(self):
        reset_change_feed()
        first = get_change_feed()
        assert get_change_feed() is first

        reset_change_feed()
        assert get_change_feed() is not first
        reset_change_feed()


class TestSubscription:
    """Tests for snapshot delivery and cancellation."""

    @pytest.mark.asyncio
    async def test_initial_snapshot_and_change(self, feed):
        received = asyncio.Queue()
        subscription = Subscription(feed, "violations", Counter(), received.put_nowait)
        try:
            assert await asyncio.wait_for(received.get(), timeout=5) == 1

            feed.publish("violations")

            assert await asyncio.wait_for(received.get(), timeout=5) == 2
        finally:
            await subscription.aclose()

    @pytest.mark.asyncio
    async def test_async_callback(self, feed):
        received = []
        delivered = asyncio.Event()

        async def on_change(value):
            received.append(value)
            delivered.set()

        subscription = Subscription(feed, "violations", Counter(), on_change)
        try:
            await asyncio.wait_for(delivered.wait(), timeout=5)
            assert received == [1]
        finally:
            await subscription.aclose()

    @pytest.mark.asyncio
    async def test_bursts_are_coalesced(self, feed):
        received = asyncio.Queue()
        fetch = Counter()
        subscription = Subscription(feed, "violations", fetch, received.put_nowait)
        try:
            await asyncio.wait_for(received.get(), timeout=5)

            for _ in range(5):
                feed.publish("violations")

            assert await asyncio.wait_for(received.get(), timeout=5) == 2
            await asyncio.sleep(0.05)
            assert received.empty()
            assert fetch.calls == 2
        finally:
            await subscription.aclose()

    @pytest.mark.asyncio
    async def test_cancel_stops_delivery(self, feed):
        received = asyncio.Queue()
        subscription = Subscription(feed, "violations", Counter(), received.put_nowait)
        await asyncio.wait_for(received.get(), timeout=5)

        subscription.cancel()
        subscription.cancel()
        feed.publish("violations")
        await asyncio.sleep(0.05)

        assert subscription.cancelled
        assert received.empty()
        assert feed.listener_count("violations") == 0

    @pytest.mark.asyncio
    async def test_cancel_before_first_delivery(self, feed):
        on_change = MagicMock()
        subscription = Subscription(feed, "violations", Counter(), on_change)

        await subscription.aclose()

        on_change.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_errors_go_to_on_error(self, feed):
        errors = asyncio.Queue()
        received = asyncio.Queue()
        attempts = Counter()

        async def flaky_fetch():
            count = await attempts()
            if count == 1:
                raise RuntimeError("store offline")
            return count

        subscription = Subscription(
            feed, "violations", flaky_fetch, received.put_nowait, errors.put_nowait
        )
        try:
            error = await asyncio.wait_for(errors.get(), timeout=5)
            assert str(error) == "store offline"

            feed.publish("violations")

            assert await asyncio.wait_for(received.get(), timeout=5) == 2
        finally:
            await subscription.aclose()

    @pytest.mark.asyncio
    async def test_callback_errors_are_logged_without_on_error(self, feed, caplog):
        delivered = asyncio.Event()

        def on_change(value):
            delivered.set()
            raise ValueError("render failed")

        subscription = Subscription(feed, "violations", Counter(), on_change)
        try:
            await asyncio.wait_for(delivered.wait(), timeout=5)
            await asyncio.sleep(0.01)
        finally:
            await subscription.aclose()

        assert "render failed" in caplog.text

    @pytest.mark.asyncio
    async def test_independent_subscriptions(self, feed):
        first = asyncio.Queue()
        second = asyncio.Queue()
        a = Subscription(feed, "violations", Counter(), first.put_nowait)
        b = Subscription(feed, "violations", Counter(), second.put_nowait)
        try:
            await asyncio.wait_for(first.get(), timeout=5)
            await asyncio.wait_for(second.get(), timeout=5)

            a.cancel()
            feed.publish("violations")

            assert await asyncio.wait_for(second.get(), timeout=5) == 2
            assert first.empty()
        finally:
            await a.aclose()
            await b.aclose()

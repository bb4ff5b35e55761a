"""Live query subscriptions.

Repositories publish a collection name on the ``ChangeFeed`` after every
successful write. Each ``Subscription`` listens for its collection, re-runs
its query and hands the full current result to its ``on_change`` callback.
Bursts of changes that arrive while a query is running are coalesced into a
single re-query, since every payload is a complete snapshot anyway.

Subscriptions run on the event loop they were created on and deliver one
payload at a time. They live until ``cancel()`` is called; the owner of a
subscription is responsible for cancelling it.
"""

import asyncio
import contextlib
import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ChangeCallback = Callable[[Any], Any]
ErrorCallback = Callable[[Exception], Any]
Listener = Callable[[], None]

VIOLATIONS = "violations"
COMPLAINTS = "complaints"


class ChangeFeed:
    """In-process publish hub keyed by collection name."""

    def __init__(self):
        self._listeners: Dict[str, Set[Listener]] = defaultdict(set)

    def add_listener(self, collection: str, listener: Listener) -> None:
        self._listeners[collection].add(listener)

    def remove_listener(self, collection: str, listener: Listener) -> None:
        self._listeners[collection].discard(listener)

    def listener_count(self, collection: str) -> int:
        return len(self._listeners.get(collection, ()))

    def publish(self, collection: str) -> None:
        """Notify every listener of ``collection`` that it changed."""
        for listener in list(self._listeners.get(collection, ())):
            listener()


async def _invoke(callback: Callable[[Any], Any], value: Any) -> None:
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class Subscription(Generic[T]):
    """Handle for one live query.

    An initial snapshot is delivered as soon as the event loop runs the
    subscription's task, then one more after each change to the collection.
    Query failures and callback failures go to ``on_error`` (or the log when
    there is none) and the subscription keeps running.

    Must be created while an event loop is running.
    """

    def __init__(
        self,
        feed: ChangeFeed,
        collection: str,
        fetch: Callable[[], Awaitable[T]],
        on_change: Callable[[T], Any],
        on_error: Optional[ErrorCallback] = None,
    ):
        self._feed = feed
        self._collection = collection
        self._fetch = fetch
        self._on_change = on_change
        self._on_error = on_error
        self._cancelled = False
        self._dirty = asyncio.Event()
        self._dirty.set()
        self._feed.add_listener(collection, self._mark_dirty)
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _mark_dirty(self) -> None:
        if not self._cancelled:
            self._dirty.set()

    async def _run(self) -> None:
        while not self._cancelled:
            await self._dirty.wait()
            self._dirty.clear()

            try:
                snapshot = await self._fetch()
            except Exception as e:
                await self._report(e)
                continue

            if self._cancelled:
                break

            try:
                await _invoke(self._on_change, snapshot)
            except Exception as e:
                await self._report(e)

    async def _report(self, error: Exception) -> None:
        if self._cancelled:
            return
        if self._on_error is None:
            logger.error(f"Error in {self._collection} subscription: {error}")
            return
        try:
            await _invoke(self._on_error, error)
        except Exception as e:
            logger.error(f"Error handler for {self._collection} subscription failed: {e}")

    def cancel(self) -> None:
        """Stop delivery immediately and release the feed listener. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        self._feed.remove_listener(self._collection, self._mark_dirty)
        self._task.cancel()
        logger.debug(f"Cancelled {self._collection} subscription")

    async def aclose(self) -> None:
        """Cancel and wait for the delivery task to finish."""
        self.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task


_change_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """Get or create the process-wide ChangeFeed."""
    global _change_feed
    if _change_feed is None:
        _change_feed = ChangeFeed()
    return _change_feed


def reset_change_feed() -> None:
    """Drop the process-wide ChangeFeed. Primarily useful for testing."""
    global _change_feed
    _change_feed = None

"""Work queue of resources waiting to be reconciled.

Watch events and interval timers both feed the same queue. A resource is only
queued once no matter how many triggers arrive before a worker picks it up,
and a resource is never handed to two workers at the same time: if it is added
again while being processed it is queued once processing is done.
"""

import asyncio
from collections.abc import Hashable
import logging
from typing import Generic, TypeVar

_LOGGER = logging.getLogger(__name__)

__all__ = ["WorkQueue"]

K = TypeVar("K", bound=Hashable)


class WorkQueue(Generic[K]):
    """A deduplicating queue with delayed adds."""

    def __init__(self) -> None:
        """Initialize WorkQueue."""
        self._queue: asyncio.Queue[K | None] = asyncio.Queue()
        self._dirty: set[K] = set()
        self._processing: set[K] = set()
        self._timers: dict[K, tuple[float, asyncio.TimerHandle]] = {}
        self._shutdown = False

    def __len__(self) -> int:
        """Return the number of keys waiting for a worker."""
        return len(self._dirty)

    @property
    def processing(self) -> set[K]:
        """Keys currently handed out to a worker."""
        return set(self._processing)

    def add(self, key: K) -> None:
        """Queue the key unless it is already waiting."""
        if self._shutdown or key in self._dirty:
            return
        _LOGGER.debug("Queueing %s", key)
        self._dirty.add(key)
        if key in self._processing:
            return
        self._queue.put_nowait(key)

    def add_after(self, key: K, delay: float) -> None:
        """Queue the key after the delay.

        Only the earliest of several pending delayed adds for a key is kept.
        """
        if self._shutdown:
            return
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()
        when = loop.time() + delay
        if (existing := self._timers.get(key)) is not None:
            if existing[0] <= when:
                return
            existing[1].cancel()
        _LOGGER.debug("Queueing %s in %.1fs", key, delay)
        self._timers[key] = (when, loop.call_at(when, self._fire, key))

    def _fire(self, key: K) -> None:
        self._timers.pop(key, None)
        self.add(key)

    def forget(self, key: K) -> None:
        """Drop any waiting or delayed adds for the key."""
        if (timer := self._timers.pop(key, None)) is not None:
            timer[1].cancel()
        self._dirty.discard(key)

    async def get(self) -> K | None:
        """Wait for the next key, or return None once the queue is shut down."""
        while True:
            key = await self._queue.get()
            if key is None:
                # Wake up the next waiting worker
                self._queue.put_nowait(None)
                return None
            if key not in self._dirty or key in self._processing:
                # Forgotten while waiting, or queued again by done()
                continue
            self._dirty.discard(key)
            self._processing.add(key)
            return key

    def done(self, key: K) -> None:
        """Mark processing of the key as finished."""
        self._processing.discard(key)
        if key in self._dirty and not self._shutdown:
            self._queue.put_nowait(key)

    def shutdown(self) -> None:
        """Stop handing out keys and cancel all delayed adds."""
        self._shutdown = True
        for _, timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._queue.put_nowait(None)

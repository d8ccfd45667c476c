"""Bounded, drop-on-full conduit between the ingestors and the notifier.

Producers call :meth:`EventChannel.offer`, which never waits: when the
channel already buffers ``capacity`` events the new one is discarded and
counted. A single consumer drains the channel with ``async for``.

Example:
>>> channel = EventChannel(capacity=100)
>>> channel.offer(event)
True
>>> async for event in channel:
...     await notifier.handle(event)

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ

from ghrelay.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    from ghrelay.events import NormalizedEvent

logger = get_logger(__name__)

DEFAULT_CHANNEL_CAPACITY = 100

_CLOSED = object()


@dc.dataclass(frozen=True, slots=True)
class ChannelStats:
    """Counters describing channel throughput."""

    capacity: int
    accepted: int
    dropped: int
    pending: int


class EventChannel:
    """Multi-producer, single-consumer queue of normalised events."""

    def __init__(self, capacity: int = DEFAULT_CHANNEL_CAPACITY) -> None:
        """Create an empty channel holding at most ``capacity`` events."""
        if capacity < 1:
            msg = f"capacity must be positive, got: {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        # Unbounded underneath so the close marker always fits; offer()
        # enforces the capacity.
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._pending = 0
        self._accepted = 0
        self._dropped = 0
        self._closed = False

    @property
    def capacity(self) -> int:
        """Maximum number of buffered events."""
        return self._capacity

    @property
    def dropped(self) -> int:
        """Number of events discarded because the channel was full or closed."""
        return self._dropped

    @property
    def closed(self) -> bool:
        """Whether :meth:`close` has been called."""
        return self._closed

    @property
    def stats(self) -> ChannelStats:
        """Snapshot of the channel counters."""
        return ChannelStats(
            capacity=self._capacity,
            accepted=self._accepted,
            dropped=self._dropped,
            pending=self._pending,
        )

    def offer(self, event: NormalizedEvent) -> bool:
        """Enqueue ``event`` without waiting.

        Returns
        -------
        bool
            ``True`` when the event was buffered, ``False`` when it was
            dropped because the channel is full or closed.

        """
        if self._closed:
            self._dropped += 1
            log_warning(
                logger,
                "Event channel closed; dropping %s event for %s",
                event.kind,
                event.slug,
            )
            return False
        if self._pending >= self._capacity:
            self._dropped += 1
            log_warning(
                logger,
                "Event channel full (capacity=%d); dropping %s event for %s "
                "(dropped_total=%d)",
                self._capacity,
                event.kind,
                event.slug,
                self._dropped,
            )
            return False
        self._pending += 1
        self._accepted += 1
        self._queue.put_nowait(event)
        return True

    def close(self) -> None:
        """Stop accepting events; the consumer finishes once the buffer drains."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> NormalizedEvent | None:
        """Return the next event, or ``None`` once closed and drained."""
        if self._closed and self._pending == 0:
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any later get() calls.
            self._queue.put_nowait(_CLOSED)
            return None
        self._pending -= 1
        return typ.cast("NormalizedEvent", item)

    def __aiter__(self) -> typ.AsyncIterator[NormalizedEvent]:
        """Iterate events in arrival order until the channel is closed."""
        return self._drain()

    async def _drain(self) -> typ.AsyncIterator[NormalizedEvent]:
        while (event := await self.get()) is not None:
            yield event


__all__ = ["DEFAULT_CHANNEL_CAPACITY", "ChannelStats", "EventChannel"]

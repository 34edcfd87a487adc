"""In-process publish/subscribe for Server-Sent Event channels.

Each channel is addressed by its public path (``/sub/<secret>``).  Every
connected client owns a bounded queue; publishing never waits on a slow
client, it just skips clients whose queue is full.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

from .errors import BroadcasterClosedError, SubscriberLimitError

logger = logging.getLogger(__name__)

SUB_PREFIX = "/sub/"
KEEPALIVE_SECONDS = 15.0

_CLOSED = object()


def channel_path(secret: str) -> str:
    return SUB_PREFIX + secret


def format_event(data: str) -> str:
    """Frame *data* as one SSE ``data:`` event."""
    return "".join(f"data: {line}\n" for line in data.splitlines() or [""]) + "\n"


@dataclass(eq=False)
class Subscriber:
    path: str
    queue: asyncio.Queue = field(repr=False)


class Broadcaster:
    def __init__(self, max_subscribers: int = 0, queue_size: int = 100):
        # 0 means no limit
        self.max_subscribers = max_subscribers
        self.queue_size = queue_size
        self._channels: dict[str, set[Subscriber]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscriber_count(self, path: str) -> int:
        return len(self._channels.get(path, ()))

    def subscribe(self, path: str) -> Subscriber:
        if self._closed:
            raise BroadcasterClosedError("Broadcaster is closed")
        subscribers = self._channels.setdefault(path, set())
        if self.max_subscribers and len(subscribers) >= self.max_subscribers:
            raise SubscriberLimitError(
                f"Channel {path} already has {len(subscribers)} subscribers"
            )
        subscriber = Subscriber(path=path, queue=asyncio.Queue(self.queue_size))
        subscribers.add(subscriber)
        logger.debug("Subscribed to %s (%d total)", path, len(subscribers))
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        subscribers = self._channels.get(subscriber.path)
        if not subscribers:
            return
        subscribers.discard(subscriber)
        if not subscribers:
            del self._channels[subscriber.path]

    def publish(self, path: str, data: str) -> int:
        """Queue *data* for every subscriber of *path*.

        Returns the number of subscribers the event was queued for.
        """
        sent = 0
        for subscriber in list(self._channels.get(path, ())):
            try:
                subscriber.queue.put_nowait(data)
            except asyncio.QueueFull:
                logger.warning("Subscriber queue full on %s, event skipped", path)
                continue
            sent += 1
        return sent

    async def stream(
        self, subscriber: Subscriber, keepalive: float = KEEPALIVE_SECONDS
    ) -> AsyncIterator[str]:
        """Yield SSE frames for *subscriber* until the broadcaster closes."""
        try:
            while True:
                try:
                    item = await asyncio.wait_for(subscriber.queue.get(), keepalive)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                if item is _CLOSED:
                    return
                yield format_event(item)
        finally:
            self.unsubscribe(subscriber)

    def close(self) -> None:
        """End every open stream and refuse new subscribers."""
        self._closed = True
        for subscribers in self._channels.values():
            for subscriber in subscribers:
                # make room for the close marker so the stream always ends
                while subscriber.queue.full():
                    subscriber.queue.get_nowait()
                subscriber.queue.put_nowait(_CLOSED)
        logger.info("Broadcaster closed")

"""Broadcast hub for the live trade stream.

The hub owns the in-memory trade history and the set of connected stream
subscribers. All mutations go through its methods and none of them awaits,
so on a single event loop they never interleave.
"""

import asyncio
import itertools
import json
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Deque, Iterable, List, Optional

from pool_tracker.logging_config import get_logger
from pool_tracker.models import Trade

logger = get_logger(__name__)

HISTORY_EVENT = "history"
TRADE_EVENT = "trade"
PING_EVENT = "ping"

# Queued by Subscriber.close to end a pending events() iteration
_CLOSED = object()


@dataclass(frozen=True)
class StreamEvent:
    """One message destined for a stream subscriber."""

    name: str
    data: Any = None


def format_sse(event: StreamEvent) -> str:
    """Render an event in Server-Sent Events wire format.

    Pings become comment lines, which clients ignore but proxies see as
    traffic.
    """
    if event.name == PING_EVENT:
        return ": ping\n\n"
    return f"event: {event.name}\ndata: {json.dumps(event.data)}\n\n"


class Subscriber:
    """A connected stream client, fed through an unbounded queue.

    Events are only refused once the subscriber is closed, so a connected
    client never misses a trade however slowly it reads.

    Args:
        subscriber_id: Sequence number assigned by the hub
    """

    def __init__(self, subscriber_id: int):
        self.id = subscriber_id
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.keepalive_task: Optional[asyncio.Task] = None

    def push(self, event: StreamEvent) -> bool:
        """Queue an event without blocking.

        Returns:
            False if the subscriber is closed
        """
        if self.closed:
            return False
        self.queue.put_nowait(event)
        return True

    async def _keepalive(self, interval: float):
        while not self.closed:
            await asyncio.sleep(interval)
            self.push(StreamEvent(PING_EVENT))

    def start_keepalive(self, interval: float):
        self.keepalive_task = asyncio.create_task(self._keepalive(interval))

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.queue.put_nowait(_CLOSED)
        if self.keepalive_task is not None:
            self.keepalive_task.cancel()
            self.keepalive_task = None

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield queued events until the subscriber is closed."""
        while True:
            event = await self.queue.get()
            if event is _CLOSED:
                return
            yield event


class TradeStreamHub:
    """Owns the trade history buffer and fans new trades out to subscribers.

    Args:
        capacity: Maximum number of trades kept, newest first
        replay_limit: Maximum number of trades sent to a new subscriber
        keepalive_interval: Seconds between pings to each subscriber
    """

    def __init__(self, capacity: int = 8000, replay_limit: int = 2000,
                 keepalive_interval: float = 15.0):
        self.capacity = capacity
        self.replay_limit = replay_limit
        self.keepalive_interval = keepalive_interval
        self._history: Deque[Trade] = deque(maxlen=capacity)
        self._subscribers: List[Subscriber] = []
        self._next_subscriber_id = 1

    @property
    def trade_count(self) -> int:
        return len(self._history)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def history(self, limit: Optional[int] = None) -> List[Trade]:
        """Return up to ``limit`` trades, newest first."""
        if limit is None:
            return list(self._history)
        return [trade for _, trade in zip(range(limit), self._history)]

    def replace_history(self, trades: Iterable[Trade]):
        """Replace the whole buffer with ``trades`` (expected newest first).

        Only the first ``capacity`` trades, the newest, are kept.
        """
        self._history = deque(itertools.islice(trades, self.capacity), maxlen=self.capacity)

    def subscribe(self) -> Subscriber:
        """Register a subscriber and hand it the current history snapshot."""
        subscriber = Subscriber(self._next_subscriber_id)
        self._next_subscriber_id += 1

        snapshot = [trade.to_json_dict() for trade in self.history(self.replay_limit)]
        subscriber.push(StreamEvent(HISTORY_EVENT, snapshot))

        self._subscribers.append(subscriber)
        subscriber.start_keepalive(self.keepalive_interval)
        logger.info(f"Client connected. Total: {len(self._subscribers)}")
        return subscriber

    def unsubscribe(self, subscriber: Subscriber):
        """Remove a subscriber after its client disconnected."""
        subscriber.close()
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)
            logger.info(f"Client disconnected. Remaining: {len(self._subscribers)}")

    def publish(self, trade: Trade):
        """Record a new trade and send it to every subscriber."""
        time_str = datetime.fromtimestamp(trade.timestamp / 1000).strftime("%H:%M:%S")
        logger.info(
            f"{trade.trade_type.value.upper()} | {trade.token_amount:.0f} token for "
            f"{trade.native_amount:.4f} native | {time_str} | {trade.trader_prefix}"
        )

        self._history.appendleft(trade)

        event = StreamEvent(TRADE_EVENT, trade.to_json_dict())
        for subscriber in list(self._subscribers):
            if not subscriber.push(event):
                logger.debug(f"Dropped trade {trade.id} for subscriber {subscriber.id}")

    def close(self):
        """Close every subscriber (server shutdown)."""
        for subscriber in list(self._subscribers):
            self.unsubscribe(subscriber)

# services/connection_registry.py
"""
Live connection registry.

Holds at most one EventChannel (a server-sent-event stream) per member name.
A new registration for a name replaces and closes the previous channel.

The name -> channel map is guarded by an asyncio.Lock, and the lock is only
held while reading or swapping the map entry. Channel writes happen after the
lock is released. Each write enqueues one complete SSE frame, so frames from
concurrent senders never interleave.
"""
import asyncio
import json
import logging
import time
from enum import Enum
from typing import AsyncIterator, Dict, Optional

from pydantic import BaseModel

from core.errors import DeliveryError

logger = logging.getLogger(__name__)

CONNECT_EVENT = "connect"
CONNECT_DATA = "connected!"


def format_sse(event_name: str, data) -> str:
    """Render one SSE frame. Models and dicts are sent as JSON, strings as-is."""
    if isinstance(data, BaseModel):
        payload = data.model_dump_json(by_alias=True)
    elif isinstance(data, str):
        payload = data
    else:
        payload = json.dumps(data)
    lines = [f"event: {event_name}"]
    lines.extend(f"data: {line}" for line in payload.splitlines() or [""])
    return "\n".join(lines) + "\n\n"


class SendResult(str, Enum):
    DELIVERED = "delivered"
    NOT_CONNECTED = "not_connected"


class EventChannel:
    """One member's outbound event stream."""

    def __init__(self, member_name: str, max_pending: int = 100):
        self.member_name = member_name
        self.created_at = time.time()
        self.max_pending = max_pending
        # unbounded so close() can always enqueue its sentinel; send() enforces max_pending
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event_name: str, data) -> None:
        if self._closed:
            raise DeliveryError(f"channel for {self.member_name} is closed")
        if self._queue.qsize() >= self.max_pending:
            raise DeliveryError(f"channel for {self.member_name} has {self.max_pending} undelivered events")
        self._queue.put_nowait(format_sse(event_name, data))

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def stream(self, idle_timeout: Optional[float] = None) -> AsyncIterator[str]:
        """
        Yield SSE frames until the channel is closed, the peer goes away, or
        nothing has been sent for idle_timeout seconds.
        """
        try:
            while True:
                try:
                    frame = await asyncio.wait_for(self._queue.get(), timeout=idle_timeout)
                except asyncio.TimeoutError:
                    logger.info("SSE channel for %s idle for %ss, closing", self.member_name, idle_timeout)
                    break
                if frame is None:
                    break
                yield frame
        finally:
            self._closed = True


class ConnectionRegistry:
    def __init__(self, max_pending: int = 100):
        self.max_pending = max_pending
        self._channels: Dict[str, EventChannel] = {}
        self._lock = asyncio.Lock()

    def open_channel(self, name: str) -> EventChannel:
        return EventChannel(name, max_pending=self.max_pending)

    async def register(self, name: str, channel: EventChannel) -> EventChannel:
        """
        Queue the "connect" acknowledgement on channel, then store it for name
        (last writer wins). The ack goes in while the channel is still private,
        so it is always the first frame. Raises DeliveryError, without touching
        the map, if the channel is already closed.
        """
        if channel.closed:
            raise DeliveryError(f"channel for {name} is closed")
        await channel.send(CONNECT_EVENT, CONNECT_DATA)
        async with self._lock:
            previous = self._channels.get(name)
            self._channels[name] = channel
        if previous is not None and previous is not channel:
            logger.info("Replacing live connection for %s", name)
            previous.close()
        logger.info("Member %s connected (%d live)", name, len(self._channels))
        return channel

    async def is_connected(self, name: str) -> bool:
        async with self._lock:
            return name in self._channels

    async def get(self, name: str) -> Optional[EventChannel]:
        async with self._lock:
            return self._channels.get(name)

    async def remove(self, name: str, channel: Optional[EventChannel] = None) -> bool:
        """
        Drop the entry for name and close its channel. With channel given, only
        drop it if it is still the current one, so a superseded stream tearing
        down does not evict its replacement.
        """
        async with self._lock:
            current = self._channels.get(name)
            if current is None or (channel is not None and current is not channel):
                return False
            del self._channels[name]
        current.close()
        logger.info("Member %s disconnected", name)
        return True

    async def send(self, name: str, event_name: str, data) -> SendResult:
        """
        Deliver one event to name's live channel. NOT_CONNECTED means the
        caller should fall back to another route. A failed write drops the
        stale entry and raises DeliveryError.
        """
        channel = await self.get(name)
        if channel is None:
            return SendResult.NOT_CONNECTED
        try:
            await channel.send(event_name, data)
        except DeliveryError:
            await self.remove(name, channel)
            raise
        return SendResult.DELIVERED

    async def close_all(self) -> None:
        async with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()
        for channel in channels:
            channel.close()
        logger.info("Closed %d live connections", len(channels))

    def __len__(self) -> int:
        return len(self._channels)

"""
In-process event dispatcher.

Purpose:
- Carry LocationUpdated / StatusUpdated events from the write path to the
  proximity pipeline
- Keep the write path non-blocking: publish() only enqueues, a full queue
  drops the event with a warning
- Run a small pool of worker tasks so events are handled concurrently

Usage:
- dispatcher = EventDispatcher(pipeline.handle, max_queue=1000, workers=2)
- await dispatcher.start(); dispatcher.publish(event); await dispatcher.stop()
"""
import asyncio
import logging
from typing import Awaitable, Callable, List

from models.member import MemberEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[MemberEvent], Awaitable[object]]


class EventDispatcher:
    """Bounded queue + worker tasks feeding member events to a handler."""

    def __init__(self, handler: EventHandler, max_queue: int = 1000, workers: int = 1):
        self.handler = handler
        self.workers = max(1, workers)
        self.queue: asyncio.Queue[MemberEvent] = asyncio.Queue(maxsize=max_queue)
        self._tasks: List[asyncio.Task] = []
        self.processed = 0
        self.failed = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def publish(self, event: MemberEvent) -> bool:
        """Enqueue an event. Never blocks and never raises to the caller."""
        try:
            self.queue.put_nowait(event)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning("Event queue full (%d), dropping %s event for %s",
                           self.queue.maxsize, event.kind, event.member.name)
            return False

    async def _work(self, worker_id: int):
        while True:
            event = await self.queue.get()
            try:
                await self.handler(event)
                self.processed += 1
            except Exception as e:
                logger.error("Worker %d failed on %s event for %s: %s",
                             worker_id, event.kind, event.member.name, e)
                self.failed += 1
            finally:
                self.queue.task_done()

    async def start(self):
        if self._tasks:
            return
        self._tasks = [asyncio.create_task(self._work(i)) for i in range(self.workers)]
        logger.info("Event dispatcher started with %d workers", self.workers)

    async def join(self):
        """Wait until every queued event has been handled."""
        await self.queue.join()

    async def stop(self):
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Event dispatcher stopped. Processed: %d, Failed: %d, Dropped: %d",
                    self.processed, self.failed, self.dropped)

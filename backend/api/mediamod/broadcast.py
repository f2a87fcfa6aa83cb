"""Best-effort, at-most-once fan-out of moderation events to live observers.

Each observer owns a bounded asyncio.Queue bound to the event loop it
connected from. `emit` only schedules a non-blocking put on that loop, so it
may be called from request worker threads as well as from the loop itself,
and a slow observer only ever overflows its own buffer.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Dict, List, Optional
from uuid import uuid4

from mediamod.logging_config import get_logger
from mediamod.models import BroadcastEvent

logger = get_logger(__name__)


class ObserverHandle:
    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int):
        self.id = uuid4().hex
        self.dropped = 0
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    def deliver(self, event: BroadcastEvent) -> None:
        if self._closed:
            return
        self._loop.call_soon_threadsafe(self._offer, event)

    def _offer(self, event: BroadcastEvent) -> None:
        # runs on the observer's loop
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "broadcast_dropped",
                observer_id=self.id,
                event_type=event.type,
                reason="buffer_full",
            )

    async def get(self) -> BroadcastEvent:
        return await self._queue.get()

    def get_nowait(self) -> BroadcastEvent:
        """Raises asyncio.QueueEmpty when nothing is buffered."""
        return self._queue.get_nowait()

    def close(self) -> None:
        self._closed = True


class ObserverRegistry:
    """The set of connected observers. add/remove are its only mutators."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observers: Dict[str, ObserverHandle] = {}

    def add(self, handle: ObserverHandle) -> None:
        with self._lock:
            self._observers[handle.id] = handle

    def remove(self, handle: ObserverHandle) -> bool:
        with self._lock:
            return self._observers.pop(handle.id, None) is not None

    def snapshot(self) -> List[ObserverHandle]:
        with self._lock:
            return list(self._observers.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._observers)


class BroadcastChannel:
    def __init__(self, queue_size: int = 100, registry: Optional[ObserverRegistry] = None):
        self.queue_size = queue_size
        self.registry = registry or ObserverRegistry()

    @property
    def observer_count(self) -> int:
        return len(self.registry)

    def connect(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> ObserverHandle:
        """
        Register a new observer. It receives events emitted from now on; no backlog.
        Without `loop`, must be called from a running event loop.
        """
        handle = ObserverHandle(loop or asyncio.get_running_loop(), self.queue_size)
        self.registry.add(handle)
        logger.info("observer_connected", observer_id=handle.id, observers=len(self.registry))
        return handle

    def disconnect(self, handle: ObserverHandle) -> None:
        handle.close()
        if self.registry.remove(handle):
            logger.info("observer_disconnected", observer_id=handle.id, observers=len(self.registry))

    def emit(self, event: BroadcastEvent) -> None:
        """Fire-and-forget. Never raises; one observer's failure does not affect the others."""
        try:
            observers = self.registry.snapshot()
        except Exception:
            logger.exception("broadcast_failed", event_type=getattr(event, "type", None))
            return

        for handle in observers:
            try:
                handle.deliver(event)
            except Exception as e:
                # typically the observer's loop is already closed
                logger.warning(
                    "broadcast_delivery_failed",
                    observer_id=handle.id,
                    event_type=event.type,
                    error=str(e),
                )

        logger.debug("broadcast_emitted", event_type=event.type, observers=len(observers))

"""
Broadcast Hub

Single consumer that drains the broadcast queue and writes each payload to
every registered connection. Sessions only ever enqueue; the hub is the one
task that writes outbound frames.

Queue capacity is bounded. What happens when it is full is chosen by
BackpressurePolicy:
- block:       publishers wait for room (default)
- drop_oldest: the oldest queued payload is discarded
- drop_newest: the payload being published is discarded
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from starlette.websockets import WebSocketState

from .manager import ConnectionInfo, ConnectionRegistry

logger = logging.getLogger(__name__)


class BackpressurePolicy(str, Enum):
    """What publish() does when the queue is full."""
    BLOCK = "block"
    DROP_OLDEST = "drop_oldest"
    DROP_NEWEST = "drop_newest"


class BroadcastHub:
    """
    Bounded FIFO of outbound payloads plus the task that delivers them.

    Each payload is delivered to the connections registered at the moment it
    is dequeued. A write that fails or times out removes and closes only that
    connection; the rest of the round continues.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        max_queue_size: int = 1024,
        policy: BackpressurePolicy = BackpressurePolicy.BLOCK,
        write_timeout: Optional[float] = 5.0,
    ):
        if max_queue_size <= 0:
            raise ValueError("max_queue_size must be positive")

        self.registry = registry
        self.policy = BackpressurePolicy(policy)
        self.write_timeout = write_timeout or None
        self._max_queue_size = max_queue_size
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_queue_size)
        self._task: Optional[asyncio.Task] = None

        self.delivered_count = 0
        self.dropped_count = 0
        self.failed_writes = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    async def publish(self, payload: str) -> bool:
        """
        Enqueue a payload for broadcast.

        Returns:
            False if the payload itself was dropped (drop_newest), True otherwise
        """
        if self.policy is BackpressurePolicy.BLOCK:
            await self._queue.put(payload)
            return True

        if self.policy is BackpressurePolicy.DROP_NEWEST:
            try:
                self._queue.put_nowait(payload)
            except asyncio.QueueFull:
                self.dropped_count += 1
                logger.warning(f"Broadcast queue full, dropping new payload ({self.dropped_count} dropped)")
                return False
            return True

        # drop_oldest
        while True:
            try:
                self._queue.put_nowait(payload)
                return True
            except asyncio.QueueFull:
                try:
                    self._queue.get_nowait()
                    self._queue.task_done()
                except asyncio.QueueEmpty:
                    continue
                self.dropped_count += 1
                logger.warning(f"Broadcast queue full, dropped oldest payload ({self.dropped_count} dropped)")

    async def run(self):
        """Consume the queue forever, one broadcast round per payload."""
        logger.info("Broadcast hub started")
        try:
            while True:
                payload = await self._queue.get()
                try:
                    await self.broadcast(payload)
                except Exception:
                    logger.exception("Broadcast round failed")
                finally:
                    self._queue.task_done()
        finally:
            logger.info("Broadcast hub stopped")

    async def broadcast(self, payload: str) -> int:
        """
        Write a payload to every registered connection.

        Returns:
            Number of connections that received the payload
        """
        failed: List[ConnectionInfo] = []
        sent_count = 0

        async def deliver(conn_info: ConnectionInfo):
            nonlocal sent_count
            try:
                await asyncio.wait_for(
                    conn_info.websocket.send_text(payload),
                    timeout=self.write_timeout,
                )
                sent_count += 1
            except Exception as e:
                logger.warning(f"Broadcast failed for connection: {e!r}")
                failed.append(conn_info)

        await self.registry.for_each(deliver)

        for conn_info in failed:
            await self._drop_connection(conn_info)

        self.delivered_count += sent_count
        self.failed_writes += len(failed)
        return sent_count

    async def _drop_connection(self, conn_info: ConnectionInfo):
        """Unregister and close a connection whose write failed."""
        await self.registry.unregister(conn_info.websocket)
        websocket = conn_info.websocket
        if getattr(websocket, "application_state", None) == WebSocketState.DISCONNECTED:
            return
        try:
            await websocket.close(code=1011, reason="write failed")
        except Exception as e:
            logger.debug(f"Close after failed write raised: {e!r}")

    def start(self) -> asyncio.Task:
        """Launch the consumer task on the running loop."""
        if not self.is_running:
            self._task = asyncio.create_task(self.run(), name="broadcast-hub")
        return self._task

    async def stop(self, drain: bool = True, timeout: Optional[float] = 5.0):
        """
        Stop the consumer.

        Args:
            drain: Deliver already queued payloads first
            timeout: Upper bound in seconds on the drain
        """
        if self._task is None:
            return

        if drain and self.is_running:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Broadcast drain timed out with {self.queue_depth} payloads queued")

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def stats(self) -> Dict[str, Any]:
        """Queue and delivery statistics."""
        return {
            "running": self.is_running,
            "policy": self.policy.value,
            "queue_depth": self.queue_depth,
            "queue_capacity": self._max_queue_size,
            "delivered": self.delivered_count,
            "dropped": self.dropped_count,
            "failed_writes": self.failed_writes,
        }

"""
WebSocket Connection Registry

Tracks the WebSocket connections that are currently open on the relay.
Mutations and snapshots go through an asyncio lock; callers only ever see
snapshots. The count and membership checks read without the lock, which is
safe because every caller runs on the same event loop.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ConnectionInfo:
    """Information about a registered WebSocket connection."""
    websocket: WebSocket
    connected_at: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)


class ConnectionRegistry:
    """
    Lock-protected set of live connections.

    Features:
    - Register / unregister from any session task
    - Snapshot iteration that tolerates concurrent mutation
    - Connection counts for status endpoints
    """

    def __init__(self):
        # websocket -> ConnectionInfo
        self._connections: Dict[WebSocket, ConnectionInfo] = {}
        self._lock = asyncio.Lock()

    async def register(
        self,
        websocket: WebSocket,
        metadata: Optional[Dict[str, Any]] = None
    ) -> ConnectionInfo:
        """
        Add a connection to the registry.

        Args:
            websocket: An accepted WebSocket connection
            metadata: Optional metadata about the connection

        Returns:
            ConnectionInfo for the connection (the existing one if already registered)
        """
        async with self._lock:
            conn_info = self._connections.get(websocket)
            if conn_info is None:
                conn_info = ConnectionInfo(websocket=websocket, metadata=metadata or {})
                self._connections[websocket] = conn_info
            count = len(self._connections)

        logger.info(f"WebSocket registered ({count} connected)")
        return conn_info

    async def unregister(self, websocket: WebSocket) -> bool:
        """
        Remove a connection from the registry.

        Returns:
            True if the connection was registered, False otherwise
        """
        async with self._lock:
            conn_info = self._connections.pop(websocket, None)
            count = len(self._connections)

        if conn_info is None:
            return False

        logger.info(f"WebSocket unregistered ({count} connected)")
        return True

    async def snapshot(self) -> List[ConnectionInfo]:
        """Copy of the current members, taken under the lock."""
        async with self._lock:
            return list(self._connections.values())

    async def for_each(self, fn: Callable[[ConnectionInfo], Awaitable[None]]) -> int:
        """
        Await ``fn`` once per connection registered at call time.

        The member list is snapshotted under the lock and ``fn`` runs outside
        it, so ``fn`` may itself unregister connections.

        Returns:
            Number of connections visited
        """
        members = await self.snapshot()
        for conn_info in members:
            await fn(conn_info)
        return len(members)

    def is_registered(self, websocket: WebSocket) -> bool:
        return websocket in self._connections

    def get_connection_count(self) -> int:
        """Get the number of registered connections."""
        return len(self._connections)

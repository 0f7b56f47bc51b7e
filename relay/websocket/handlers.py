"""
Compute WebSocket Handler

Per-connection session for the /compute endpoint.

Protocol:
    Client → Server:
    - {"name": "alice", "expression": "3+4"}

    Server → all clients:
    - "alice: 3.00 + 4.00 = 7.00"  (plain text frame)

A frame that fails to decode, parse or evaluate ends that client's session.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Union

from fastapi import WebSocket, status
from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect, WebSocketState

from relay.calculator import ComputeRequest, ExpressionError, compute

from .hub import BroadcastHub
from .manager import ConnectionInfo, ConnectionRegistry

logger = logging.getLogger(__name__)


class SessionTerminated(Exception):
    """Raised inside a session to close it with a specific code and reason."""

    def __init__(self, reason: str, code: int = status.WS_1003_UNSUPPORTED_DATA):
        self.reason = reason
        self.code = code
        super().__init__(reason)


class ComputeHandler:
    """
    Runs one session per connection: receive → decode → compute → publish.

    The handler never writes results itself; every result goes through the
    hub so that all clients see the same ordered stream.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        hub: BroadcastHub,
        read_timeout: Optional[float] = None,
    ):
        self.registry = registry
        self.hub = hub
        self.read_timeout = read_timeout or None

    async def handle_connection(
        self,
        websocket: WebSocket,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """
        Handle a WebSocket connection lifecycle.

        Args:
            websocket: The WebSocket connection (not yet accepted)
            metadata: Optional connection metadata
        """
        await websocket.accept()
        conn_info = await self.registry.register(websocket, metadata)
        close_code = status.WS_1000_NORMAL_CLOSURE
        close_reason = ""

        try:
            while True:
                raw = await self._receive(websocket)
                if raw is None:
                    logger.info("Client disconnected from /compute")
                    break
                await self.handle_message(raw, conn_info)

        except SessionTerminated as e:
            logger.warning(f"Closing session: {e.reason}")
            close_code, close_reason = e.code, e.reason
        except WebSocketDisconnect:
            logger.info("Client disconnected from /compute")
        except Exception as e:
            logger.error(f"WebSocket error: {e!r}")
            close_code, close_reason = status.WS_1011_INTERNAL_ERROR, "internal error"
        finally:
            await self.registry.unregister(websocket)
            await self._close(websocket, close_code, close_reason)

    async def handle_message(self, raw: Union[str, bytes], conn_info: ConnectionInfo) -> str:
        """
        Decode one frame, compute it and enqueue the result line.

        Returns:
            The payload handed to the hub

        Raises:
            SessionTerminated: the frame could not be decoded, parsed or evaluated
        """
        try:
            request = ComputeRequest.model_validate_json(raw)
        except ValidationError as e:
            raise SessionTerminated(f"read: {e.error_count()} validation error(s)") from e

        try:
            payload = compute(request.name, request.expression)
        except ExpressionError as e:
            raise SessionTerminated(f"compute: {e}") from e

        if not await self.hub.publish(payload):
            logger.warning(f"Result for {request.name!r} dropped by broadcast queue")
        else:
            logger.debug(f"Queued result from {conn_info.metadata.get('peer')}: {payload}")
        return payload

    async def _receive(self, websocket: WebSocket) -> Optional[Union[str, bytes]]:
        """Next frame as text or bytes; None once the client has gone."""
        try:
            message = await asyncio.wait_for(websocket.receive(), timeout=self.read_timeout)
        except asyncio.TimeoutError:
            raise SessionTerminated("read timeout", code=status.WS_1008_POLICY_VIOLATION) from None

        if message["type"] == "websocket.disconnect":
            return None
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def _close(self, websocket: WebSocket, code: int, reason: str):
        if websocket.application_state == WebSocketState.DISCONNECTED:
            return
        if websocket.client_state == WebSocketState.DISCONNECTED:
            return
        try:
            await websocket.close(code=code, reason=reason[:120])
        except Exception as e:
            logger.debug(f"Close raised: {e!r}")

"""
Shared test fixtures for the compute relay.

Provides:
- Mock WebSocket connections that record what they were sent
- Mock WebSockets that fail or hang on write
- Scripted inbound frames for session tests
"""

import asyncio
import json
from typing import Any, Dict, List
from unittest.mock import AsyncMock

import pytest

from relay.websocket import ConnectionRegistry


def make_websocket(send_error: Exception = None, hang: bool = False) -> AsyncMock:
    """Mock WebSocket whose send_text records payloads, raises, or never returns."""
    ws = AsyncMock()
    ws.sent_messages: List[str] = []

    async def record_send(data: str):
        if hang:
            await asyncio.Event().wait()
        if send_error is not None:
            raise send_error
        ws.sent_messages.append(data)

    ws.send_text = AsyncMock(side_effect=record_send)
    return ws


def text_frame(data: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "websocket.receive", "text": json.dumps(data)}


DISCONNECT = {"type": "websocket.disconnect", "code": 1000}


@pytest.fixture
def mock_websocket():
    """Create a mock WebSocket that records sent messages."""
    return make_websocket()


@pytest.fixture
def websocket_factory():
    """Build additional mock WebSockets inside a test."""
    return make_websocket


@pytest.fixture
def failing_websocket():
    """WebSocket whose every write raises."""
    return make_websocket(send_error=RuntimeError("connection reset"))


@pytest.fixture
def hanging_websocket():
    """WebSocket whose writes never complete."""
    return make_websocket(hang=True)


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def scripted_websocket():
    """Factory for a WebSocket that yields the given ASGI messages from receive()."""
    def factory(*messages: Dict[str, Any]) -> AsyncMock:
        ws = make_websocket()
        ws.receive = AsyncMock(side_effect=list(messages))
        return ws
    return factory

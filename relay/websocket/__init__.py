"""WebSocket infrastructure for the compute relay."""

from .manager import ConnectionInfo, ConnectionRegistry
from .hub import BackpressurePolicy, BroadcastHub
from .handlers import ComputeHandler, SessionTerminated

__all__ = [
    "ConnectionInfo",
    "ConnectionRegistry",
    "BackpressurePolicy",
    "BroadcastHub",
    "ComputeHandler",
    "SessionTerminated",
]

"""
Relay configuration.

Values come from the environment (a local .env file is loaded first):

    RELAY_ADDR              bind address, host:port (default localhost:8080)
    RELAY_QUEUE_SIZE        broadcast queue capacity (default 1024)
    RELAY_BACKPRESSURE      block | drop_oldest | drop_newest (default block)
    RELAY_WRITE_TIMEOUT     seconds allowed per outbound write (default 5)
    RELAY_READ_TIMEOUT      idle seconds before a session is closed, 0 = never
    RELAY_SHUTDOWN_TIMEOUT  seconds to drain the queue on shutdown (default 5)
    RELAY_LOG_LEVEL         logging level name (default INFO)
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

from relay.websocket.hub import BackpressurePolicy

DEFAULT_ADDR = "localhost:8080"


def parse_address(addr: str) -> Tuple[str, int]:
    """
    Split ``host:port`` into its parts.

    An empty host binds all interfaces; IPv6 hosts may be bracketed
    (``[::1]:8080``).
    """
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"address must be host:port, got {addr!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_num = int(port)
    except ValueError:
        raise ValueError(f"invalid port in address {addr!r}") from None
    if not 0 <= port_num <= 65535:
        raise ValueError(f"port out of range in address {addr!r}")
    return host or "0.0.0.0", port_num


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative")
    return value


@dataclass
class RelaySettings:
    """Runtime settings for the relay server."""
    addr: str = DEFAULT_ADDR
    queue_size: int = 1024
    backpressure: BackpressurePolicy = BackpressurePolicy.BLOCK
    write_timeout: float = 5.0
    read_timeout: Optional[float] = None
    shutdown_timeout: float = 5.0
    log_level: str = "INFO"

    def __post_init__(self):
        self.backpressure = BackpressurePolicy(self.backpressure)
        if self.queue_size <= 0:
            raise ValueError("queue_size must be positive")
        parse_address(self.addr)

    @property
    def host(self) -> str:
        return parse_address(self.addr)[0]

    @property
    def port(self) -> int:
        return parse_address(self.addr)[1]

    @classmethod
    def from_env(cls) -> "RelaySettings":
        """Build settings from environment variables and .env."""
        load_dotenv()

        queue_raw = os.getenv("RELAY_QUEUE_SIZE", "1024")
        try:
            queue_size = int(queue_raw)
        except ValueError:
            raise ValueError(f"RELAY_QUEUE_SIZE must be an integer, got {queue_raw!r}") from None

        policy_raw = os.getenv("RELAY_BACKPRESSURE", BackpressurePolicy.BLOCK.value).strip().lower()
        try:
            policy = BackpressurePolicy(policy_raw)
        except ValueError:
            choices = ", ".join(p.value for p in BackpressurePolicy)
            raise ValueError(f"RELAY_BACKPRESSURE must be one of {choices}, got {policy_raw!r}") from None

        log_level = os.getenv("RELAY_LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"unknown RELAY_LOG_LEVEL {log_level!r}")

        return cls(
            addr=os.getenv("RELAY_ADDR", DEFAULT_ADDR),
            queue_size=queue_size,
            backpressure=policy,
            write_timeout=_float_env("RELAY_WRITE_TIMEOUT", 5.0),
            read_timeout=_float_env("RELAY_READ_TIMEOUT", 0.0) or None,
            shutdown_timeout=_float_env("RELAY_SHUTDOWN_TIMEOUT", 5.0),
            log_level=log_level,
        )

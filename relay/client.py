#!/usr/bin/env python3
"""
Compute Relay Client

Interactive CLI client for the /compute endpoint.

Usage:
    # Start the relay first:
    python -m relay

    # Then run one or more clients:
    python -m relay.client --name alice

Every line typed is sent as an expression; every broadcast result from any
client is printed as it arrives.

Commands:
    name <new>   - Change the name attached to expressions
    help         - Show this help
    quit         - Exit client
"""

import asyncio
import json
from typing import List, Optional

import websockets


def build_request(name: str, expression: str) -> str:
    """JSON frame for one compute request."""
    return json.dumps({"name": name, "expression": expression})


class RelayClient:
    """Interactive client for the compute relay."""

    DEFAULT_SERVER = "ws://localhost:8080"

    def __init__(self, server_url: str = None, name: str = "anonymous"):
        self.server_url = (server_url or self.DEFAULT_SERVER).rstrip("/")
        self.name = name
        self.ws = None
        self.results: List[str] = []
        self.running = False
        self._receive_task: Optional[asyncio.Task] = None

    @property
    def endpoint(self) -> str:
        return f"{self.server_url}/compute"

    async def connect(self) -> bool:
        """Connect to the compute endpoint."""
        try:
            self.ws = await websockets.connect(self.endpoint)
            print(f"[CONNECTED] {self.endpoint}")
            return True
        except Exception as e:
            print(f"[ERROR] Failed to connect: {e}")
            return False

    async def disconnect(self):
        """Disconnect from server."""
        if self.ws:
            await self.ws.close()
            self.ws = None
            print("[DISCONNECTED]")

    async def submit(self, expression: str) -> bool:
        """Send one expression under the current name."""
        if not self.ws:
            print("[ERROR] Not connected.")
            return False

        await self.ws.send(build_request(self.name, expression))
        return True

    async def receive(self) -> str:
        """Wait for the next broadcast line."""
        message = await self.ws.recv()
        if isinstance(message, bytes):
            message = message.decode("utf-8")
        self.results.append(message)
        return message

    async def _receive_messages(self):
        """Background task printing broadcasts."""
        try:
            while self.running and self.ws:
                line = await self.receive()
                print(f"\n{line}")
                print("relay> ", end="", flush=True)
        except websockets.exceptions.ConnectionClosed as e:
            print(f"\n[DISCONNECTED] Connection closed by server ({e.rcvd.reason if e.rcvd else 'no reason'})")
            self.running = False

    def print_help(self):
        """Print help message."""
        print("""
Compute Relay Client
====================

Type an expression to evaluate it, e.g. 3+4 or 10/2.
A malformed expression ends the connection.

Commands:
  name <new>   Change your name
  help         Show this help
  quit         Exit client
""")

    async def handle_line(self, line: str) -> bool:
        """
        Process one line of input.

        Returns:
            False when the client should exit
        """
        line = line.strip()
        if not line:
            return True

        parts = line.split(maxsplit=1)
        cmd = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""

        if cmd in ("quit", "exit"):
            return False
        elif cmd == "help":
            self.print_help()
        elif cmd == "name":
            if not args:
                print("[ERROR] Usage: name <new>")
            else:
                self.name = args
                print(f"[NAME] {self.name}")
        else:
            await self.submit(line)
        return True

    async def run_interactive(self):
        """Main interactive REPL loop."""
        print("\n" + "=" * 50)
        print("  Compute Relay Client")
        print("  Type 'help' for commands, 'quit' to exit")
        print("=" * 50 + "\n")

        if not await self.connect():
            return

        self.running = True
        self._receive_task = asyncio.create_task(self._receive_messages())
        loop = asyncio.get_running_loop()

        try:
            while self.running:
                try:
                    line = await loop.run_in_executor(None, lambda: input("relay> "))
                except EOFError:
                    break
                if not await self.handle_line(line):
                    break

        except KeyboardInterrupt:
            print("\n[INTERRUPTED]")

        finally:
            self.running = False
            if self._receive_task:
                self._receive_task.cancel()
            await self.disconnect()


async def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Compute Relay Client")
    parser.add_argument(
        "--server",
        default=RelayClient.DEFAULT_SERVER,
        help=f"Relay server URL (default: {RelayClient.DEFAULT_SERVER})",
    )
    parser.add_argument(
        "--name",
        default="anonymous",
        help="Name shown next to your results",
    )
    args = parser.parse_args()

    client = RelayClient(server_url=args.server, name=args.name)
    await client.run_interactive()


def run():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()

"""
Compute Relay - FastAPI Server

Clients connect to /compute, submit {"name", "expression"} frames, and every
evaluated result line is broadcast to all connected clients.

Routes:
- GET /          landing page with a small browser client
- WS  /compute   compute relay
- GET /health    liveness and hub statistics
- GET /ws/status connection count
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from relay import __version__
from relay.config import RelaySettings
from relay.websocket import BroadcastHub, ComputeHandler, ConnectionRegistry

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


def create_app(settings: Optional[RelaySettings] = None) -> FastAPI:
    """
    Build the relay application.

    Without explicit settings the RELAY_* environment (and .env) is used.
    Each app owns its registry, hub and handler; the hub consumer runs for
    the lifetime of the app and is drained on shutdown.
    """
    settings = settings or RelaySettings.from_env()

    registry = ConnectionRegistry()
    hub = BroadcastHub(
        registry,
        max_queue_size=settings.queue_size,
        policy=settings.backpressure,
        write_timeout=settings.write_timeout,
    )
    handler = ComputeHandler(registry, hub, read_timeout=settings.read_timeout)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        hub.start()
        logger.info(f"Compute relay ready (queue={settings.queue_size}, policy={settings.backpressure.value})")
        try:
            yield
        finally:
            await hub.stop(drain=True, timeout=settings.shutdown_timeout)

    app = FastAPI(
        title="Compute Relay",
        description="Evaluates arithmetic expressions and broadcasts the results to every connected client",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = registry
    app.state.hub = hub
    app.state.handler = handler

    @app.get("/", response_class=HTMLResponse)
    async def home(request: Request):
        """Serve the landing page."""
        host = request.headers.get("host", settings.addr)
        return templates.TemplateResponse(
            request,
            "home.html",
            {"ws_url": f"ws://{host}/compute"},
        )

    @app.websocket("/compute")
    async def compute_websocket(websocket: WebSocket):
        """
        WebSocket endpoint for expression evaluation.

        Client sends:
        - {"name": "alice", "expression": "3+4"}

        Every client receives:
        - "alice: 3.00 + 4.00 = 7.00"
        """
        client = websocket.client
        await handler.handle_connection(
            websocket,
            metadata={"peer": f"{client.host}:{client.port}" if client else None},
        )

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "hub": hub.stats(),
        }

    @app.get("/ws/status")
    async def websocket_status():
        """Get WebSocket connection status."""
        return {
            "total_connections": registry.get_connection_count(),
            "queue_depth": hub.queue_depth,
        }

    return app


app = create_app()


# ==================== Main Entry Point ====================

def main(argv=None):
    """Run the relay under uvicorn."""
    import argparse

    import uvicorn

    try:
        settings = RelaySettings.from_env()
    except ValueError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    parser = argparse.ArgumentParser(description="Compute Relay server")
    parser.add_argument(
        "--addr",
        default=settings.addr,
        help=f"http service address (default: {settings.addr})"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    args = parser.parse_args(argv)

    try:
        settings.addr = args.addr
        host, port = settings.host, settings.port
    except ValueError as e:
        parser.error(str(e))

    logging.basicConfig(
        level=logging.DEBUG if args.debug else settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    print("Listening...")
    uvicorn.run(create_app(settings), host=host, port=port, log_level="debug" if args.debug else "info")


if __name__ == "__main__":
    main()

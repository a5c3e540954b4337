"""WebSocket endpoint serving one Session per client connection."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, WebSocket
from starlette.websockets import WebSocketDisconnect, WebSocketState

from .config import LinkConfig
from .discovery import DiscoveryEngine
from .exceptions import DeviceError, TransportClosed
from .protocol.methods import PROTOCOL_VERSION
from .session import Session
from .transport.adapter import BleakAdapter
from .transport.provider import BLEAdapter

_LOGGER = logging.getLogger(__name__)


class WebSocketTransport:
    """``FrameTransport`` over a Starlette WebSocket (one frame per message)."""

    def __init__(self, websocket: WebSocket):
        self._websocket = websocket
        self._closed = False

    async def receive(self) -> str | bytes:
        if self._closed:
            raise TransportClosed("Connection closed")

        try:
            message = await self._websocket.receive()
        except RuntimeError as e:
            self._closed = True
            raise TransportClosed(str(e)) from e

        if message["type"] == "websocket.disconnect":
            self._closed = True
            raise TransportClosed(f"Client disconnected ({message.get('code')})")

        text = message.get("text")
        if text is not None:
            return text
        return message.get("bytes") or b""

    async def send(self, frame: str) -> None:
        if self._closed:
            raise TransportClosed("Connection closed")
        try:
            await self._websocket.send_text(frame)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            self._closed = True
            raise TransportClosed(f"Send failed: {e}") from e

    async def close(self, code: int = 1000, reason: str = "") -> None:
        ws = self._websocket
        self._closed = True
        if (
            ws.application_state == WebSocketState.DISCONNECTED
            or ws.client_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await ws.close(code=code, reason=reason or None)
        except (RuntimeError, OSError) as e:
            _LOGGER.debug("Error closing websocket: %s", e)


def create_app(
        config: LinkConfig | None = None,
        adapter: BLEAdapter | None = None,
) -> FastAPI:
    """Create the agent application.

    Args:
        config: Agent configuration (default: built-in defaults)
        adapter: BLE adapter; a bleak-backed one is created when omitted

    Returns:
        FastAPI app with the BLE WebSocket route at ``config.path``
    """
    config = config or LinkConfig()
    if adapter is None:
        adapter = BleakAdapter(
            connect_timeout=config.connect_timeout,
            connect_attempts=config.connect_attempts,
        )
    discovery = DiscoveryEngine(adapter)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await adapter.enable()
        except DeviceError as e:
            _LOGGER.warning("BLE not enabled: %s", e)
        _LOGGER.info(
            "Listening on %s://%s:%d%s",
            "wss" if config.tls else "ws",
            config.host,
            config.port,
            config.path,
        )
        yield
        _LOGGER.info("Shutting down")
        await discovery.stop()

    app = FastAPI(
        title="Scratch Link BLE",
        version=PROTOCOL_VERSION,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.adapter = adapter
    app.state.discovery = discovery
    app.state.sessions = set()

    @app.websocket(config.path)
    async def ble_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()

        client = websocket.client
        session = Session(
            WebSocketTransport(websocket),
            adapter,
            discovery,
            name=f"{client.host}:{client.port}" if client else None,
            **config.session_options(),
        )
        app.state.sessions.add(session)
        try:
            await session.run()
        finally:
            app.state.sessions.discard(session)

    return app


async def serve(config: LinkConfig, adapter: BLEAdapter | None = None) -> None:
    """Run the agent until the server is stopped."""
    app = create_app(config, adapter)

    server_config = uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        ssl_certfile=config.certfile,
        ssl_keyfile=config.keyfile,
        ws_max_size=config.max_frame_size,
        log_level="warning",  # Reduce uvicorn logging noise
        access_log=False,
    )
    await uvicorn.Server(server_config).serve()

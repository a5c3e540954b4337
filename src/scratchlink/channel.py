"""Frame transport loop and serialized outbound path."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Protocol

from .exceptions import TransportClosed
from .protocol.messages import Frame, Message, decode_frame, encode_frame
from .protocol.methods import DEFAULT_MAX_FRAME_SIZE

_LOGGER = logging.getLogger(__name__)

DEFAULT_OUTBOUND_QUEUE_SIZE = 256


class FrameTransport(Protocol):
    """Duplex connection carrying one JSON frame per message."""

    async def receive(self) -> str | bytes:
        """Return the next frame; raise TransportClosed at end of stream."""
        ...

    async def send(self, frame: str) -> None:
        """Send one frame; raise TransportClosed if the peer is gone."""
        ...

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the connection (idempotent)."""
        ...


async def read_requests(
        transport: FrameTransport,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
) -> AsyncIterator[Message]:
    """Yield inbound requests in arrival order.

    Frames without a method (reply-shaped frames a client should not
    send) are discarded. Ends quietly at end of stream.

    Raises:
        ProtocolDecodeError: On an oversize or malformed frame
    """
    while True:
        try:
            raw = await transport.receive()
        except TransportClosed:
            _LOGGER.debug("End of stream")
            return

        message = decode_frame(raw, max_frame_size)
        if not message.method:
            _LOGGER.debug("Discarding frame without method (id=%s)", message.id)
            continue

        _LOGGER.debug("<- %s id=%s params=%s", message.method, message.id, message.params)
        yield message


_CLOSE = object()


class OutboundChannel:
    """Single writer for everything sent on one connection.

    Replies, discovery results and notification pushes all go through one
    bounded queue drained by one task, so frames never interleave on the
    transport. ``post`` never blocks and may be called from any thread;
    when the queue is full the push is dropped.
    """

    def __init__(self, transport: FrameTransport, maxsize: int = DEFAULT_OUTBOUND_QUEUE_SIZE):
        self._transport = transport
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self.dropped = 0

    def start(self) -> None:
        """Start the writer task on the running loop."""
        if self._task is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._task = self._loop.create_task(self._drain())

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, frame: Frame) -> None:
        """Queue a reply, waiting for room if necessary."""
        if self._closed:
            _LOGGER.debug("Channel closed, not sending %s", frame)
            return
        await self._queue.put(frame)

    def post(self, frame: Frame) -> None:
        """Queue a push without blocking; safe from foreign threads."""
        loop = self._loop
        if loop is None:
            raise RuntimeError("Outbound channel not started")

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._offer(frame)
        else:
            loop.call_soon_threadsafe(self._offer, frame)

    def _offer(self, frame: Frame) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            self.dropped += 1
            _LOGGER.warning("Outbound queue full, dropping push id=%s", frame.id)

    async def _drain(self) -> None:
        try:
            while True:
                frame = await self._queue.get()
                if frame is _CLOSE:
                    return
                text = encode_frame(frame)  # type: ignore[arg-type]
                _LOGGER.debug("-> %s", text)
                try:
                    await self._transport.send(text)
                except TransportClosed:
                    _LOGGER.debug("Transport closed while sending")
                    return
        finally:
            self._closed = True

    async def close(self) -> None:
        """Flush queued frames and stop the writer."""
        task = self._task
        if task is None:
            self._closed = True
            return
        if not task.done():
            await self._queue.put(_CLOSE)
            await task
        self._closed = True

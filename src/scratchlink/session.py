"""Per-connection request dispatcher and device state."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable
from typing import Callable, TypeVar

from .channel import DEFAULT_OUTBOUND_QUEUE_SIZE, FrameTransport, OutboundChannel, read_requests
from .discovery import DiscoveryEngine
from .exceptions import (
    BLETimeoutError,
    DeviceError,
    NotConnectedError,
    ProtocolDecodeError,
    ReadOverflowError,
    RequestError,
    UnsupportedEncodingError,
)
from .models.device import Device
from .models.enums import SessionState
from .notifications import NotificationRelay
from .protocol.messages import Frame, Message, error_of, new_push, respond, respond_bytes
from .protocol.methods import (
    DEFAULT_MAX_FRAME_SIZE,
    ENCODING_BASE64,
    MAX_ATTRIBUTE_SIZE,
    PROTOCOL_VERSION,
    Method,
    PushMethod,
)
from .protocol.params import (
    ConnectParams,
    DiscoverParams,
    NotificationsParams,
    ReadParams,
    UpdateParams,
    parse_params,
)
from .transport.provider import BLEAdapter, DeviceHandle

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")

# WebSocket close codes
CLOSE_NORMAL = 1000
CLOSE_INVALID_DATA = 1007
CLOSE_TOO_BIG = 1009

_session_ids = itertools.count(1)


class Session:
    """One client connection.

    Requests are handled one at a time in arrival order, so no two device
    operations of a session ever overlap. Discovery results and
    notifications are pushed concurrently through the same outbound
    channel.

    Usage:
        session = Session(transport, adapter, discovery)
        await session.run()  # until the client goes away
    """

    def __init__(
            self,
            transport: FrameTransport,
            adapter: BLEAdapter,
            discovery: DiscoveryEngine,
            *,
            name: str | None = None,
            max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
            outbound_queue_size: int = DEFAULT_OUTBOUND_QUEUE_SIZE,
            max_read_size: int = MAX_ATTRIBUTE_SIZE,
            operation_timeout: float | None = None,
    ):
        """Initialize a session.

        Args:
            transport: Duplex frame connection to the client
            adapter: Shared BLE adapter
            discovery: Shared discovery engine (one scan per process)
            name: Label used in logs (default: sequential number)
            max_frame_size: Inbound frame bound in bytes
            outbound_queue_size: Bound of the outbound frame queue
            max_read_size: Largest characteristic value ``read`` accepts
            operation_timeout: Bound on each device operation in seconds
                (None waits forever)
        """
        self.name = name or f"#{next(_session_ids)}"
        self._transport = transport
        self._adapter = adapter
        self._discovery = discovery
        self._max_frame_size = max_frame_size
        self._max_read_size = max_read_size
        self._operation_timeout = operation_timeout

        self._outbound = OutboundChannel(transport, maxsize=outbound_queue_size)
        self._relay = NotificationRelay(self._outbound.post)
        self._device: DeviceHandle | None = None
        self._closed = False

        self._handlers: dict[str, Callable[[Message], Awaitable[Frame]]] = {
            Method.GET_VERSION.value: self._get_version,
            Method.DISCOVER.value: self._discover,
            Method.CONNECT.value: self._connect,
            Method.START_NOTIFICATIONS.value: self._start_notifications,
            Method.STOP_NOTIFICATIONS.value: self._stop_notifications,
            Method.WRITE.value: self._write,
            Method.READ.value: self._read,
        }

    @property
    def state(self) -> SessionState:
        return SessionState.NO_DEVICE if self._device is None else SessionState.CONNECTED

    @property
    def device(self) -> DeviceHandle | None:
        return self._device

    @property
    def notifications(self) -> NotificationRelay:
        return self._relay

    @property
    def outbound(self) -> OutboundChannel:
        return self._outbound

    async def run(self) -> None:
        """Serve requests until end of stream or a decode failure."""
        self._outbound.start()
        _LOGGER.info("Session %s opened", self.name)

        close_code = CLOSE_NORMAL
        try:
            async for request in read_requests(self._transport, self._max_frame_size):
                await self.handle(request)
        except ProtocolDecodeError as e:
            _LOGGER.warning("Closing session %s: %s", self.name, e)
            close_code = CLOSE_TOO_BIG if e.oversize else CLOSE_INVALID_DATA
        finally:
            await self.teardown()
            await self._transport.close(close_code)
            _LOGGER.info("Session %s closed", self.name)

    async def handle(self, request: Message) -> None:
        """Dispatch one request and queue its reply.

        Unknown methods are logged and produce no frame at all.
        """
        handler = self._handlers.get(request.method)
        if handler is None:
            _LOGGER.warning(
                "Unknown method %r with params: %s", request.method, request.params
            )
            return

        try:
            reply = await handler(request)
        except DeviceError as e:
            _LOGGER.error("%s failed: %s", request.method, e)
            reply = error_of(request, str(e))
        except RequestError as e:
            _LOGGER.warning("%s rejected: %s", request.method, e)
            reply = error_of(request, str(e))
        except Exception as e:
            _LOGGER.exception("Unexpected error handling %s", request.method)
            reply = error_of(request, str(e) or type(e).__name__)

        await self._outbound.send(reply)

    async def teardown(self) -> None:
        """Stop this session's scan, release the device and flush output."""
        if self._closed:
            return
        self._closed = True

        await self._discovery.stop(owner=self)
        if self._device is not None:
            await self._release_device()
        await self._outbound.close()

    # Handlers

    async def _get_version(self, request: Message) -> Frame:
        return respond(request, {"protocol": PROTOCOL_VERSION})

    async def _discover(self, request: Message) -> Frame:
        params = parse_params(DiscoverParams, request.params)
        await self._discovery.discover(self, params.to_filters(), self._on_discovered)
        return respond(request, None)

    async def _connect(self, request: Message) -> Frame:
        params = parse_params(ConnectParams, request.params)

        # Scanning and connecting are mutually exclusive on the radio
        await self._discovery.stop()

        current = self._device
        if current is not None and current.address == params.peripheral_id and current.is_connected:
            _LOGGER.debug("Already connected to %s", params.peripheral_id)
            return respond(request, None)

        # On failure the prior device and its subscriptions stay in place
        device = await self._bounded(
            self._adapter.connect(params.peripheral_id), "connect"
        )
        if current is not None:
            await self._release_device()
        self._device = device
        _LOGGER.info("Session %s connected to %s", self.name, params.peripheral_id)
        return respond(request, None)

    async def _start_notifications(self, request: Message) -> Frame:
        params = parse_params(NotificationsParams, request.params)
        device = self._require_device()
        await self._bounded(
            self._relay.subscribe(device, params.service_id, params.characteristic_id),
            "startNotifications",
        )
        return respond(request, None)

    async def _stop_notifications(self, request: Message) -> Frame:
        params = parse_params(NotificationsParams, request.params)
        device = self._require_device()
        await self._bounded(
            self._relay.unsubscribe(device, params.service_id, params.characteristic_id),
            "stopNotifications",
        )
        return respond(request, None)

    async def _write(self, request: Message) -> Frame:
        params = parse_params(UpdateParams, request.params)
        if params.encoding != ENCODING_BASE64:
            raise UnsupportedEncodingError(
                f"encoding format {params.encoding!r} not supported"
            )
        payload = params.payload()
        device = self._require_device()

        characteristic = await self._bounded(
            device.get_characteristic(params.service_id, params.characteristic_id),
            "write",
        )
        if params.with_response:
            written = await self._bounded(
                device.write_with_response(characteristic, payload), "write"
            )
        else:
            written = await self._bounded(
                device.write_without_response(characteristic, payload), "write"
            )
        return respond(request, written)

    async def _read(self, request: Message) -> Frame:
        params = parse_params(ReadParams, request.params)
        device = self._require_device()

        characteristic = await self._bounded(
            device.get_characteristic(params.service_id, params.characteristic_id),
            "read",
        )
        if params.start_notifications:
            await self._bounded(
                self._relay.subscribe(
                    device,
                    params.service_id,
                    params.characteristic_id,
                    characteristic=characteristic,
                ),
                "read",
            )

        value = await self._bounded(device.read(characteristic), "read")
        if len(value) > self._max_read_size:
            raise ReadOverflowError(
                f"Value too big: {len(value)} bytes (read buffer {self._max_read_size})"
            )
        return respond_bytes(request, value)

    # Helpers

    def _on_discovered(self, device: Device) -> None:
        self._outbound.post(
            new_push(PushMethod.DID_DISCOVER_PERIPHERAL.value, device.to_dict())
        )

    def _require_device(self) -> DeviceHandle:
        if self._device is None:
            raise NotConnectedError("Not connected")
        return self._device

    async def _release_device(self) -> None:
        device = self._device
        if device is None:
            return
        self._device = None

        await self._relay.clear(device)
        try:
            await device.disconnect()
        except DeviceError as e:
            _LOGGER.warning("Error releasing %s: %s", device.address, e)
        _LOGGER.info("Session %s released %s", self.name, device.address)

    async def _bounded(self, operation: Awaitable[_T], what: str) -> _T:
        if not self._operation_timeout:
            return await operation
        try:
            return await asyncio.wait_for(operation, self._operation_timeout)
        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"{what} timed out after {self._operation_timeout}s"
            ) from e

    def __repr__(self) -> str:
        return f"<Session {self.name} {self.state.value}>"


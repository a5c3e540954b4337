"""Scratch Link BLE agent.

  Exposes Bluetooth Low Energy peripherals to Scratch over a local
  JSON-RPC WebSocket.
  """

from .config import LinkConfig
from .discovery import DiscoveryEngine, ScanHandle
from .exceptions import (
    AttributeNotFoundError,
    BLEConnectionError,
    BLETimeoutError,
    DeviceError,
    NotConnectedError,
    ParamValidationError,
    ProtocolDecodeError,
    ReadOverflowError,
    RequestError,
    ScratchLinkError,
    TransportClosed,
    UnsupportedEncodingError,
)
from .models import Advertisement, Device, DiscoverFilter, SessionState
from .notifications import NotificationRelay
from .protocol import PROTOCOL_VERSION, Method, PushMethod
from .server import create_app, serve
from .session import Session
from .transport import BLEAdapter, BleakAdapter, BLEConnection, DeviceHandle

__version__ = "0.1.0"

__all__ = [
    # Main API
    "LinkConfig",
    "create_app",
    "serve",
    "Session",
    "DiscoveryEngine",
    "ScanHandle",
    "NotificationRelay",
    # Protocol
    "PROTOCOL_VERSION",
    "Method",
    "PushMethod",
    # BLE provider
    "BLEAdapter",
    "BleakAdapter",
    "BLEConnection",
    "DeviceHandle",
    # Models
    "Advertisement",
    "Device",
    "DiscoverFilter",
    "SessionState",
    # Exceptions
    "ScratchLinkError",
    "TransportClosed",
    "ProtocolDecodeError",
    "RequestError",
    "ParamValidationError",
    "UnsupportedEncodingError",
    "NotConnectedError",
    "DeviceError",
    "BLEConnectionError",
    "BLETimeoutError",
    "AttributeNotFoundError",
    "ReadOverflowError",
]

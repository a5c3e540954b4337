"""Method names and constants of the Scratch Link BLE protocol."""

from __future__ import annotations

from enum import Enum


class Method(str, Enum):
    """Request methods accepted from the client."""

    GET_VERSION = "getVersion"
    DISCOVER = "discover"
    CONNECT = "connect"
    START_NOTIFICATIONS = "startNotifications"
    STOP_NOTIFICATIONS = "stopNotifications"
    WRITE = "write"
    READ = "read"


class PushMethod(str, Enum):
    """Methods of agent-initiated push messages."""

    DID_DISCOVER_PERIPHERAL = "didDiscoverPeripheral"
    CHARACTERISTIC_DID_CHANGE = "characteristicDidChange"


# Protocol constants
PROTOCOL_VERSION = "1.3"
JSONRPC_VERSION = "2.0"
ENCODING_BASE64 = "base64"

# Size limits
DEFAULT_MAX_FRAME_SIZE = 64 * 1024  # Inbound frame bound (bytes)
MAX_ATTRIBUTE_SIZE = 512  # ATT maximum attribute value length

"""Scratch Link JSON-RPC protocol implementation."""

from .messages import (
    ErrorFrame,
    Frame,
    Message,
    Result,
    decode_frame,
    encode_frame,
    error_of,
    new_push,
    respond,
    respond_bytes,
)
from .methods import (
    DEFAULT_MAX_FRAME_SIZE,
    ENCODING_BASE64,
    JSONRPC_VERSION,
    MAX_ATTRIBUTE_SIZE,
    PROTOCOL_VERSION,
    Method,
    PushMethod,
)
from .params import (
    ConnectParams,
    DiscoverFilterParams,
    DiscoverParams,
    NotificationsParams,
    ReadParams,
    UpdateParams,
    normalize_uuid,
    parse_params,
)

__all__ = [
    "Method",
    "PushMethod",
    "PROTOCOL_VERSION",
    "JSONRPC_VERSION",
    "ENCODING_BASE64",
    "DEFAULT_MAX_FRAME_SIZE",
    "MAX_ATTRIBUTE_SIZE",
    "Message",
    "Result",
    "ErrorFrame",
    "Frame",
    "new_push",
    "respond",
    "respond_bytes",
    "error_of",
    "encode_frame",
    "decode_frame",
    "ConnectParams",
    "DiscoverFilterParams",
    "DiscoverParams",
    "NotificationsParams",
    "ReadParams",
    "UpdateParams",
    "normalize_uuid",
    "parse_params",
]

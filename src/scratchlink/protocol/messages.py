"""JSON-RPC frame building, parsing and ID correlation."""

from __future__ import annotations

import base64
import itertools
import json
import threading
from dataclasses import dataclass
from typing import Any, Union

from ..exceptions import ProtocolDecodeError
from .methods import DEFAULT_MAX_FRAME_SIZE, ENCODING_BASE64, JSONRPC_VERSION


@dataclass(frozen=True)
class Message:
    """Request or push frame.

    Attributes:
        id: Caller-supplied for requests, process-unique for pushes
        method: Method name; empty for frames that look like replies
        params: Decoded JSON params, validated later per method
        jsonrpc: Protocol marker
    """

    id: int
    method: str
    params: Any = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "jsonrpc": self.jsonrpc,
            "method": self.method,
            "params": self.params,
        }


@dataclass(frozen=True)
class Result:
    """Success reply; ``encoding`` is set only for byte payloads."""

    id: int
    result: Any = None
    encoding: str | None = None
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "jsonrpc": self.jsonrpc,
            "result": self.result,
        }
        if self.encoding:
            out["encoding"] = self.encoding
        return out


@dataclass(frozen=True)
class ErrorFrame:
    """Error reply."""

    id: int
    error: str
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "jsonrpc": self.jsonrpc, "error": self.error}


Frame = Union[Message, Result, ErrorFrame]


class _PushIdSequence:
    """Monotonic, thread-safe ID source for push messages."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


_push_ids = _PushIdSequence()


def new_push(method: str, params: Any) -> Message:
    """Build an agent-initiated push with a fresh ID.

    Push IDs are unique within the process; they never correlate with a
    request and are never used for replies.
    """
    return Message(id=_push_ids.next(), method=method, params=params)


def respond(request: Message, value: Any = None) -> Result:
    """Build a success reply carrying ``request.id``."""
    return Result(id=request.id, result=value)


def respond_bytes(request: Message, buf: bytes) -> Result:
    """Build a success reply with a base64 byte payload."""
    return Result(
        id=request.id,
        result=base64.b64encode(bytes(buf)).decode("ascii"),
        encoding=ENCODING_BASE64,
    )


def error_of(request: Message, reason: str) -> ErrorFrame:
    """Build an error reply carrying ``request.id``."""
    return ErrorFrame(id=request.id, error=reason)


def encode_frame(frame: Frame) -> str:
    """Serialize a frame to its JSON text form."""
    return json.dumps(frame.to_dict(), separators=(",", ":"))


def decode_frame(raw: str | bytes, max_size: int = DEFAULT_MAX_FRAME_SIZE) -> Message:
    """Decode one inbound frame.

    Args:
        raw: Frame as received (text or binary)
        max_size: Upper bound on the encoded frame size in bytes

    Returns:
        Decoded Message (``method`` may be empty for reply-shaped frames)

    Raises:
        ProtocolDecodeError: If the frame is oversize or malformed
    """
    size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
    if size > max_size:
        raise ProtocolDecodeError(
            f"Frame too big: {size} bytes (limit {max_size})", oversize=True
        )

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise ProtocolDecodeError(f"Invalid JSON frame: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolDecodeError(f"Frame must be a JSON object, got {type(data).__name__}")

    msg_id = data.get("id", 0)
    if msg_id is None:
        msg_id = 0
    if isinstance(msg_id, bool) or not isinstance(msg_id, int):
        raise ProtocolDecodeError(f"Frame id must be an integer, got {msg_id!r}")

    method = data.get("method") or ""
    if not isinstance(method, str):
        raise ProtocolDecodeError(f"Frame method must be a string, got {method!r}")

    return Message(
        id=msg_id,
        method=method,
        params=data.get("params"),
        jsonrpc=data.get("jsonrpc") or JSONRPC_VERSION,
    )

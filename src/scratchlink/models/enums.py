from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """Device connection state of one session.

    There is no disconnect request: CONNECTED lasts until the session ends
    or a new ``connect`` replaces the device.
    """
    NO_DEVICE = "no_device"
    CONNECTED = "connected"

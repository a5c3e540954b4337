"""Exceptions raised by the Scratch Link BLE agent."""

from __future__ import annotations


class ScratchLinkError(Exception):
    """Base exception for all Scratch Link errors."""


class TransportClosed(ScratchLinkError):
    """The duplex connection reached end of stream."""


class ProtocolDecodeError(ScratchLinkError):
    """An inbound frame could not be decoded.

    Fatal to the session that received it, never to the process.
    """

    def __init__(self, message: str, *, oversize: bool = False):
        super().__init__(message)
        self.oversize = oversize


class RequestError(ScratchLinkError):
    """Base for errors answered with an error frame; the session continues."""


class ParamValidationError(RequestError):
    """Request params are missing or have the wrong shape."""


class UnsupportedEncodingError(RequestError):
    """Payload encoding other than base64."""


class NotConnectedError(RequestError):
    """Device operation requested while no device is connected."""


class DeviceError(RequestError):
    """Adapter or radio failure."""


class BLEConnectionError(DeviceError):
    """Connecting to (or talking to) a peripheral failed."""


class BLETimeoutError(DeviceError):
    """A device operation did not complete in time."""


class AttributeNotFoundError(DeviceError):
    """Service or characteristic not present on the peripheral."""


class ReadOverflowError(DeviceError):
    """Characteristic value larger than the read buffer."""

"""BLE transport layer."""

from .adapter import BleakAdapter
from .connection import BLEConnection
from .provider import AdvertisementCallback, BLEAdapter, DeviceHandle, NotificationCallback

__all__ = [
    "AdvertisementCallback",
    "BLEAdapter",
    "BLEConnection",
    "BleakAdapter",
    "DeviceHandle",
    "NotificationCallback",
]

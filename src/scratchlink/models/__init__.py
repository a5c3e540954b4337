"""Data models for the Scratch Link BLE agent."""

from .advertisement import Advertisement, clamp_rssi
from .device import Device
from .enums import SessionState
from .filters import DiscoverFilter, matches_any

__all__ = [
    "Advertisement",
    "Device",
    "DiscoverFilter",
    "SessionState",
    "clamp_rssi",
    "matches_any",
]

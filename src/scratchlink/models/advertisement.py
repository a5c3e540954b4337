"""BLE advertisement snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData as BleakAdvertisementData

_RSSI_MIN = -(1 << 15)
_RSSI_MAX = (1 << 15) - 1


def clamp_rssi(rssi: int | None) -> int:
    """Clamp an RSSI reading to signed 16-bit range (None reads as 0)."""
    if rssi is None:
        return 0
    return max(_RSSI_MIN, min(_RSSI_MAX, int(rssi)))


@dataclass(frozen=True)
class Advertisement:
    """One observed advertisement.

    Attributes:
        address: Platform address of the peripheral (MAC, or UUID on macOS)
        local_name: Advertised local name ("" when absent)
        rssi: Received signal strength, signed 16-bit
        service_uuids: Advertised service UUIDs, lowercase 128-bit form
    """

    address: str
    local_name: str = ""
    rssi: int = 0
    service_uuids: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_bleak(
            cls,
            device: BLEDevice,
            advertisement_data: BleakAdvertisementData,
    ) -> Advertisement:
        """Build from a bleak ``detection_callback`` pair."""
        return cls(
            address=device.address,
            local_name=advertisement_data.local_name or "",
            rssi=clamp_rssi(advertisement_data.rssi),
            service_uuids=frozenset(u.lower() for u in advertisement_data.service_uuids),
        )

"""Discovered peripheral model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .advertisement import Advertisement, clamp_rssi


@dataclass(frozen=True)
class Device:
    """Discovery result; a snapshot, not a live handle."""

    peripheral_id: str
    name: str
    rssi: int

    def __post_init__(self) -> None:
        if self.rssi != clamp_rssi(self.rssi):
            raise ValueError(f"rssi out of range: {self.rssi} (must fit int16)")

    @classmethod
    def from_advertisement(cls, advertisement: Advertisement) -> Device:
        return cls(
            peripheral_id=advertisement.address,
            name=advertisement.local_name,
            rssi=advertisement.rssi,
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire form used as ``didDiscoverPeripheral`` params."""
        return {
            "peripheralId": self.peripheral_id,
            "name": self.name,
            "rssi": self.rssi,
        }

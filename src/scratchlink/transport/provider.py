"""BLE capability provider interface.

The protocol engine talks to the radio only through these two classes,
so alternative backends (or test fakes) can be swapped in.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Callable

from ..exceptions import AttributeNotFoundError
from ..models.advertisement import Advertisement

AdvertisementCallback = Callable[[Advertisement], None]
NotificationCallback = Callable[[bytes], None]


class DeviceHandle(ABC):
    """A live connection to one peripheral.

    Service and characteristic objects are backend specific and opaque
    to the caller; they are only passed back into this handle.
    """

    address: str

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the link to the peripheral is up."""

    @abstractmethod
    async def discover_services(self, service_ids: Sequence[str]) -> list[Any]:
        """Return the services matching ``service_ids`` (missing ones omitted)."""

    @abstractmethod
    async def discover_characteristics(
            self, service: Any, characteristic_ids: Sequence[str]
    ) -> list[Any]:
        """Return the characteristics of ``service`` matching the ids."""

    @abstractmethod
    async def read(self, characteristic: Any) -> bytes:
        """Read the current value of a characteristic."""

    @abstractmethod
    async def write_without_response(self, characteristic: Any, data: bytes) -> int:
        """Write without acknowledgment; returns the byte count written."""

    @abstractmethod
    async def write_with_response(self, characteristic: Any, data: bytes) -> int:
        """Acknowledged write; returns the byte count written."""

    @abstractmethod
    async def enable_notifications(
            self, characteristic: Any, callback: NotificationCallback | None
    ) -> None:
        """Enable value-change callbacks, or disable them when ``callback`` is None."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the connection."""

    async def get_characteristic(self, service_id: str, characteristic_id: str) -> Any:
        """Resolve a characteristic by service and characteristic UUID.

        Raises:
            AttributeNotFoundError: If the service or characteristic is absent
        """
        services = await self.discover_services([service_id])
        if not services:
            raise AttributeNotFoundError(f"Service {service_id} not found")

        characteristics = await self.discover_characteristics(services[0], [characteristic_id])
        if not characteristics:
            raise AttributeNotFoundError(
                f"Characteristic {characteristic_id} not found in service {service_id}"
            )
        return characteristics[0]


class BLEAdapter(ABC):
    """The process-wide radio.

    Only one scan may run at a time; callers serialise scan start/stop.
    """

    @abstractmethod
    async def enable(self) -> None:
        """Make the adapter ready for use."""

    @abstractmethod
    async def scan(self, on_result: AdvertisementCallback) -> None:
        """Scan until ``stop_scan`` is called, reporting every advertisement.

        Blocks for the whole scan; stopping is advisory and the call
        returns shortly after ``stop_scan``.
        """

    @abstractmethod
    async def stop_scan(self) -> None:
        """Ask the running scan (if any) to finish."""

    @abstractmethod
    async def connect(self, address: str) -> DeviceHandle:
        """Open a connection with default timing parameters."""

"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from bleak import BleakClient, BleakScanner
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..exceptions import BLEConnectionError, BLETimeoutError, DeviceError
from .provider import DeviceHandle, NotificationCallback

if TYPE_CHECKING:
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice
    from bleak.backends.service import BleakGATTService

_LOGGER = logging.getLogger(__name__)


class BLEConnection(DeviceHandle):
    """Connection to one peripheral, backed by bleak.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    """

    def __init__(
            self,
            address: str,
            ble_device: BLEDevice | None = None,
            timeout: float = 10.0,
            max_attempts: int = 3,
            use_services_cache: bool = True,
    ):
        """Initialize BLE connection manager.

        Args:
            address: Peripheral address (MAC, or CoreBluetooth UUID on macOS)
            ble_device: Optional BLEDevice seen during a scan
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 3)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
        """
        self.address = address
        self.ble_device = ble_device
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache

        self._client: BleakClient | None = None

    async def connect(self) -> None:
        """Establish BLE connection to device.

        Raises:
            BLEConnectionError: If connection fails
            BLETimeoutError: If connection times out
        """
        if self._client and self._client.is_connected:
            return  # Already connected

        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                self.address,
                self.max_attempts
            )

            if self.ble_device:
                device = self.ble_device
            else:
                device = await BleakScanner.find_device_by_address(
                    self.address,
                    timeout=self.timeout
                )
                if device is None:
                    raise BLEConnectionError(
                        f"Device {self.address} not found during scan"
                    )

            self._client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or self.address,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )

            _LOGGER.debug("Connected to %s", self.address)

        except asyncio.TimeoutError as e:
            raise BLETimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except BLEConnectionError:
            raise
        except Exception as e:
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

    async def disconnect(self) -> None:
        """Disconnect from device."""
        if self._client and self._client.is_connected:
            try:
                _LOGGER.debug("Disconnecting from %s", self.address)
                await self._client.disconnect()
            except Exception as e:
                _LOGGER.warning("Error during disconnect: %s", e)
            finally:
                self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to device."""
        return self._client is not None and self._client.is_connected

    def _require_client(self) -> BleakClient:
        if not self._client or not self._client.is_connected:
            raise BLEConnectionError("Not connected")
        return self._client

    async def discover_services(self, service_ids: Sequence[str]) -> list[BleakGATTService]:
        """Look up services in the (cached) GATT database."""
        services = self._require_client().services
        found = []
        for service_id in service_ids:
            service = services.get_service(service_id)
            if service is not None:
                found.append(service)
        return found

    async def discover_characteristics(
            self,
            service: BleakGATTService,
            characteristic_ids: Sequence[str],
    ) -> list[BleakGATTCharacteristic]:
        found = []
        for characteristic_id in characteristic_ids:
            characteristic = service.get_characteristic(characteristic_id)
            if characteristic is not None:
                found.append(characteristic)
        return found

    async def read(self, characteristic: BleakGATTCharacteristic) -> bytes:
        client = self._require_client()
        try:
            return bytes(await client.read_gatt_char(characteristic))
        except Exception as e:
            raise DeviceError(f"Read failed: {e}") from e

    async def write_without_response(
            self, characteristic: BleakGATTCharacteristic, data: bytes
    ) -> int:
        return await self._write(characteristic, data, response=False)

    async def write_with_response(
            self, characteristic: BleakGATTCharacteristic, data: bytes
    ) -> int:
        return await self._write(characteristic, data, response=True)

    async def _write(
            self, characteristic: BleakGATTCharacteristic, data: bytes, response: bool
    ) -> int:
        client = self._require_client()
        try:
            await client.write_gatt_char(characteristic, data, response=response)
        except Exception as e:
            raise DeviceError(f"Write failed: {e}") from e
        return len(data)

    async def enable_notifications(
            self,
            characteristic: BleakGATTCharacteristic,
            callback: NotificationCallback | None,
    ) -> None:
        """Start or stop notifications on a characteristic.

        Args:
            characteristic: Characteristic to (un)subscribe
            callback: Receives each value as bytes; None stops notifications
        """
        client = self._require_client()
        try:
            if callback is None:
                await client.stop_notify(characteristic)
                _LOGGER.debug("Notifications stopped on %s", characteristic.uuid)
                return

            def _on_notify(_sender: Any, data: bytearray) -> None:
                callback(bytes(data))

            await client.start_notify(characteristic, _on_notify)
            _LOGGER.debug("Notifications started on %s", characteristic.uuid)
        except Exception as e:
            raise DeviceError(f"Notification setup failed: {e}") from e

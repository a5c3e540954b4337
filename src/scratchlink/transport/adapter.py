"""bleak-backed BLE adapter: scanning and connection setup."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import TYPE_CHECKING

from bleak import BleakScanner

from ..exceptions import DeviceError
from ..models.advertisement import Advertisement
from .connection import BLEConnection
from .provider import AdvertisementCallback, BLEAdapter

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice
    from bleak.backends.scanner import AdvertisementData

_LOGGER = logging.getLogger(__name__)

# Most BLEDevice objects remembered from the current scan
DEFAULT_SEEN_LIMIT = 256


class BleakAdapter(BLEAdapter):
    """Default system adapter.

    Remembers the named BLEDevice objects seen during the latest scan so a
    following ``connect`` does not need another lookup scan. The cache is
    reset when a scan starts and holds at most ``seen_limit`` entries.
    """

    def __init__(
            self,
            connect_timeout: float = 10.0,
            connect_attempts: int = 3,
            use_services_cache: bool = True,
            seen_limit: int = DEFAULT_SEEN_LIMIT,
    ):
        self.connect_timeout = connect_timeout
        self.connect_attempts = connect_attempts
        self.use_services_cache = use_services_cache
        self.seen_limit = seen_limit

        self._seen: OrderedDict[str, BLEDevice] = OrderedDict()
        self._stop_event: asyncio.Event | None = None
        self._enabled = False

    async def enable(self) -> None:
        """Check the radio by starting and stopping a scanner once.

        Raises:
            DeviceError: If no usable adapter is present
        """
        if self._enabled:
            return
        scanner = BleakScanner()
        try:
            await scanner.start()
            await scanner.stop()
        except Exception as e:
            raise DeviceError(f"BLE adapter not available: {e}") from e
        self._enabled = True
        _LOGGER.info("BLE adapter enabled")

    async def scan(self, on_result: AdvertisementCallback) -> None:
        """Scan until ``stop_scan`` is called.

        Raises:
            DeviceError: If the scanner cannot be started
        """
        stop_event = asyncio.Event()
        self._stop_event = stop_event
        self._seen.clear()

        def _detected(device: BLEDevice, advertisement_data: AdvertisementData) -> None:
            if advertisement_data.local_name:
                self._remember(device)
            on_result(Advertisement.from_bleak(device, advertisement_data))

        scanner = BleakScanner(detection_callback=_detected)
        try:
            await scanner.start()
        except Exception as e:
            if self._stop_event is stop_event:
                self._stop_event = None
            raise DeviceError(f"Scan failed: {e}") from e

        _LOGGER.debug("Scanner started")
        try:
            await stop_event.wait()
        finally:
            if self._stop_event is stop_event:
                self._stop_event = None
            try:
                await scanner.stop()
            except Exception as e:
                _LOGGER.warning("Error stopping scanner: %s", e)
            _LOGGER.debug("Scanner stopped")

    def _remember(self, device: BLEDevice) -> None:
        self._seen[device.address] = device
        self._seen.move_to_end(device.address)
        while len(self._seen) > self.seen_limit:
            self._seen.popitem(last=False)

    @property
    def seen_count(self) -> int:
        return len(self._seen)

    async def stop_scan(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    async def connect(self, address: str) -> BLEConnection:
        """Connect to ``address``, reusing the scan result when there is one.

        Raises:
            BLEConnectionError: If connection fails
            BLETimeoutError: If connection times out
        """
        connection = BLEConnection(
            address,
            ble_device=self._seen.get(address),
            timeout=self.connect_timeout,
            max_attempts=self.connect_attempts,
            use_services_cache=self.use_services_cache,
        )
        await connection.connect()
        return connection

"""Asynchronous peripheral discovery on the shared adapter."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Callable

from .exceptions import DeviceError
from .models.advertisement import Advertisement
from .models.device import Device
from .models.filters import DiscoverFilter, matches_any
from .transport.provider import BLEAdapter

_LOGGER = logging.getLogger(__name__)

DeviceCallback = Callable[[Device], None]

# How long a stopped scan may take to wind down before it is cancelled
DEFAULT_STOP_GRACE = 2.0


class ScanHandle:
    """One scan started by ``DiscoveryEngine.discover``."""

    def __init__(
            self,
            owner: object,
            filters: Iterable[DiscoverFilter],
            on_device: DeviceCallback,
    ):
        self.owner = owner
        self.filters = list(filters)
        self.on_device = on_device
        self.active = True
        self.matches = 0
        self.started = False
        self.task: asyncio.Task[None] | None = None

    def deliver(self, advertisement: Advertisement) -> None:
        """Filter one advertisement and report it if it matches."""
        if not self.active:
            return

        _LOGGER.debug(
            "Found device %s rssi=%d name=%r",
            advertisement.address,
            advertisement.rssi,
            advertisement.local_name,
        )
        if not matches_any(self.filters, advertisement):
            return

        self.matches += 1
        self.on_device(Device.from_advertisement(advertisement))


class DiscoveryEngine:
    """Owner of the single scan allowed on the process-wide radio.

    Starting a scan stops the previous one whichever session owns it;
    start and stop are serialised by one lock.
    """

    def __init__(self, adapter: BLEAdapter, stop_grace: float = DEFAULT_STOP_GRACE):
        self._adapter = adapter
        self._stop_grace = stop_grace
        self._lock = asyncio.Lock()
        self._current: ScanHandle | None = None

    @property
    def current(self) -> ScanHandle | None:
        """The running scan, if any."""
        return self._current

    @property
    def scanning(self) -> bool:
        return self._current is not None

    async def discover(
            self,
            owner: object,
            filters: Iterable[DiscoverFilter],
            on_device: DeviceCallback,
    ) -> ScanHandle:
        """Replace any running scan with a new one and return immediately.

        Args:
            owner: Token identifying the requester (the session)
            filters: Filter list; an advertisement matching any entry is reported
            on_device: Called once per matching advertisement

        Returns:
            Handle of the new scan
        """
        async with self._lock:
            await self._stop_locked()

            handle = ScanHandle(owner, filters, on_device)
            handle.task = asyncio.create_task(self._run(handle))
            self._current = handle

        _LOGGER.info("Scan started with %d filter(s)", len(handle.filters))
        return handle

    async def stop(self, owner: object | None = None) -> bool:
        """Stop the running scan.

        Args:
            owner: Only stop if the scan belongs to this owner (None = any)

        Returns:
            True if a scan was stopped
        """
        async with self._lock:
            current = self._current
            if current is None:
                return False
            if owner is not None and current.owner is not owner:
                return False
            await self._stop_locked()
            return True

    async def _stop_locked(self) -> None:
        handle = self._current
        if handle is None:
            return

        self._current = None
        handle.active = False
        await self._adapter.stop_scan()

        task = handle.task
        if task is not None and not handle.started:
            # Never reached the adapter, so there is nothing to wind down
            task.cancel()
            await asyncio.wait({task})
        elif task is not None and not task.done():
            done, _ = await asyncio.wait({task}, timeout=self._stop_grace)
            if not done:
                _LOGGER.warning(
                    "Scan did not stop within %.1fs, cancelling", self._stop_grace
                )
                task.cancel()
                await asyncio.wait({task})

        _LOGGER.info("Scan stopped after %d match(es)", handle.matches)

    async def _run(self, handle: ScanHandle) -> None:
        handle.started = True
        try:
            await self._adapter.scan(handle.deliver)
        except DeviceError as e:
            _LOGGER.error("Scan error: %s", e)
        except Exception:
            _LOGGER.exception("Unexpected scan failure")
        finally:
            handle.active = False
            if self._current is handle:
                self._current = None

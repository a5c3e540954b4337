"""Test the discovery engine against a fake adapter."""

from __future__ import annotations

import pytest

from fakes import FakeAdapter, settle
from scratchlink.discovery import DiscoveryEngine
from scratchlink.exceptions import DeviceError
from scratchlink.models.advertisement import Advertisement
from scratchlink.models.device import Device
from scratchlink.models.filters import DiscoverFilter

SERVICE = "0000180f-0000-1000-8000-00805f9b34fb"


class TestDiscover:
    @pytest.mark.asyncio
    async def test_reports_matching_named_advertisements(self, adapter: FakeAdapter) -> None:
        engine = DiscoveryEngine(adapter)
        found: list[Device] = []

        await engine.discover("session", [DiscoverFilter(name="Foo")], found.append)
        await settle()
        adapter.advertise("AA:AA:AA:AA:AA:01", "Foo", -50)
        adapter.advertise("AA:AA:AA:AA:AA:02", "Bar", -50)
        adapter.advertise("AA:AA:AA:AA:AA:03", "", -50)

        assert found == [Device("AA:AA:AA:AA:AA:01", "Foo", -50)]
        assert engine.current is not None and engine.current.matches == 1
        await engine.stop()

    @pytest.mark.asyncio
    async def test_service_filter(self, adapter: FakeAdapter) -> None:
        engine = DiscoveryEngine(adapter)
        found: list[Device] = []

        await engine.discover("session", [DiscoverFilter(services=frozenset({SERVICE}))], found.append)
        await settle()
        adapter.advertise("AA:AA:AA:AA:AA:01", "With", services=[SERVICE])
        adapter.advertise("AA:AA:AA:AA:AA:02", "Without")

        assert [d.name for d in found] == ["With"]
        await engine.stop()

    @pytest.mark.asyncio
    async def test_new_discover_replaces_previous_scan(self, adapter: FakeAdapter) -> None:
        """Only one scan runs on the adapter, whoever started it."""
        engine = DiscoveryEngine(adapter)
        first: list[Device] = []
        second: list[Device] = []

        await engine.discover("a", [], first.append)
        await settle()
        await engine.discover("b", [], second.append)
        await settle()
        adapter.advertise("AA:AA:AA:AA:AA:01", "Foo")

        assert first == []
        assert len(second) == 1
        assert engine.current is not None and engine.current.owner == "b"
        assert adapter.scans == 2
        await engine.stop()

    @pytest.mark.asyncio
    async def test_stop_before_scan_task_runs(self, adapter: FakeAdapter) -> None:
        engine = DiscoveryEngine(adapter)

        handle = await engine.discover("session", [], lambda d: None)
        assert await engine.stop() is True

        assert handle.task is not None and handle.task.done()
        assert adapter.scans == 0
        assert not engine.scanning


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_only_for_owner(self, adapter: FakeAdapter) -> None:
        engine = DiscoveryEngine(adapter)
        await engine.discover("a", [], lambda d: None)
        await settle()

        assert await engine.stop(owner="b") is False
        assert engine.scanning
        assert await engine.stop(owner="a") is True
        assert not engine.scanning
        assert not adapter.scanning

    @pytest.mark.asyncio
    async def test_stop_when_idle(self, adapter: FakeAdapter) -> None:
        assert await DiscoveryEngine(adapter).stop() is False

    @pytest.mark.asyncio
    async def test_unresponsive_scan_is_cancelled_after_grace(self, adapter: FakeAdapter) -> None:
        adapter.ignore_stop = True
        engine = DiscoveryEngine(adapter, stop_grace=0.01)
        handle = await engine.discover("session", [], lambda d: None)
        await settle()

        await engine.stop()

        assert handle.task is not None and handle.task.cancelled()
        assert not adapter.scanning

    @pytest.mark.asyncio
    async def test_no_results_after_stop(self, adapter: FakeAdapter) -> None:
        engine = DiscoveryEngine(adapter)
        found: list[Device] = []
        handle = await engine.discover("session", [], found.append)
        await settle()

        await engine.stop()
        handle.deliver(Advertisement("AA:AA:AA:AA:AA:01", "Foo"))  # late callback

        assert found == []


class TestScanFailure:
    @pytest.mark.asyncio
    async def test_adapter_error_ends_scan(self) -> None:
        class _FailingAdapter(FakeAdapter):
            async def scan(self, on_result):
                raise DeviceError("radio off")

        engine = DiscoveryEngine(_FailingAdapter())
        handle = await engine.discover("session", [], lambda d: None)
        await settle()

        assert handle.task is not None and handle.task.done()
        assert not engine.scanning

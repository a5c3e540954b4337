"""Test advertisement snapshots and discovery results."""

from types import SimpleNamespace

import pytest

from scratchlink.models.advertisement import Advertisement, clamp_rssi
from scratchlink.models.device import Device


class TestAdvertisement:
    """Test building snapshots from bleak callback arguments."""

    def test_from_bleak(self):
        """Service UUIDs are lowercased, name and RSSI copied."""
        device = SimpleNamespace(address="AA:BB:CC:DD:EE:FF")
        data = SimpleNamespace(
            local_name="micro:bit",
            rssi=-71,
            service_uuids=["0000180F-0000-1000-8000-00805F9B34FB"],
        )

        adv = Advertisement.from_bleak(device, data)

        assert adv.address == "AA:BB:CC:DD:EE:FF"
        assert adv.local_name == "micro:bit"
        assert adv.rssi == -71
        assert adv.service_uuids == frozenset({"0000180f-0000-1000-8000-00805f9b34fb"})

    def test_from_bleak_without_name(self):
        """Missing local name reads as empty string."""
        device = SimpleNamespace(address="11:22:33:44:55:66")
        data = SimpleNamespace(local_name=None, rssi=-90, service_uuids=[])

        assert Advertisement.from_bleak(device, data).local_name == ""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [(None, 0), (-60, -60), (-40000, -32768), (40000, 32767)],
    )
    def test_clamp_rssi(self, raw, expected):
        assert clamp_rssi(raw) == expected


class TestDevice:
    """Test discovery result snapshots."""

    def test_from_advertisement(self):
        adv = Advertisement("AA:BB:CC:DD:EE:FF", "Foo", -55)

        device = Device.from_advertisement(adv)

        assert device == Device(peripheral_id="AA:BB:CC:DD:EE:FF", name="Foo", rssi=-55)

    def test_wire_form(self):
        device = Device("AA:BB:CC:DD:EE:FF", "Foo", -55)
        assert device.to_dict() == {
            "peripheralId": "AA:BB:CC:DD:EE:FF",
            "name": "Foo",
            "rssi": -55,
        }

    def test_rssi_must_fit_int16(self):
        with pytest.raises(ValueError, match="int16"):
            Device("AA:BB:CC:DD:EE:FF", "Foo", 70000)

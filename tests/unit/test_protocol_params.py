"""Test request parameter validation."""

from __future__ import annotations

import pytest

from scratchlink.exceptions import ParamValidationError
from scratchlink.models.filters import DiscoverFilter
from scratchlink.protocol import (
    ConnectParams,
    DiscoverParams,
    NotificationsParams,
    ReadParams,
    UpdateParams,
    normalize_uuid,
    parse_params,
)

BATTERY_SERVICE = "0000180f-0000-1000-8000-00805f9b34fb"


class TestNormalizeUuid:
    @pytest.mark.parametrize(
        "value",
        [
            "0000180f-0000-1000-8000-00805f9b34fb",
            "0000180F-0000-1000-8000-00805F9B34FB",
            "180f",
            "180F",
            0x180F,
        ],
    )
    def test_forms_of_the_same_uuid(self, value) -> None:
        assert normalize_uuid(value) == BATTERY_SERVICE

    def test_32_bit_forms(self) -> None:
        expected = "12345678-0000-1000-8000-00805f9b34fb"
        assert normalize_uuid("12345678") == expected
        assert normalize_uuid(0x12345678) == expected

    @pytest.mark.parametrize("value", ["nope", "", 1.5, True, -1, None])
    def test_rejects_garbage(self, value) -> None:
        with pytest.raises(ValueError):
            normalize_uuid(value)


class TestParseParams:
    def test_discover_filters(self) -> None:
        params = parse_params(
            DiscoverParams,
            {"filters": [{"name": "Foo"}, {"namePrefix": "BBC", "services": [0x180F]}]},
        )
        assert params.to_filters() == [
            DiscoverFilter(name="Foo"),
            DiscoverFilter(name_prefix="BBC", services=frozenset({BATTERY_SERVICE})),
        ]

    def test_discover_without_params(self) -> None:
        assert parse_params(DiscoverParams, None).to_filters() == []

    def test_empty_strings_mean_absent(self) -> None:
        params = parse_params(DiscoverParams, {"filters": [{"name": "", "namePrefix": ""}]})
        assert params.to_filters() == [DiscoverFilter()]

    def test_connect(self) -> None:
        params = parse_params(ConnectParams, {"peripheralId": "AA:BB:CC:DD:EE:FF"})
        assert params.peripheral_id == "AA:BB:CC:DD:EE:FF"

    @pytest.mark.parametrize("raw", [None, {}, {"peripheralId": ""}, {"peripheralId": 5}, [1]])
    def test_connect_invalid(self, raw) -> None:
        with pytest.raises(ParamValidationError, match="invalid params"):
            parse_params(ConnectParams, raw)

    def test_notifications_normalizes_uuids(self) -> None:
        params = parse_params(NotificationsParams, {"serviceId": "180F", "characteristicId": 0x2A19})
        assert params.service_id == BATTERY_SERVICE
        assert params.characteristic_id == "00002a19-0000-1000-8000-00805f9b34fb"

    def test_notifications_bad_uuid_names_field(self) -> None:
        with pytest.raises(ParamValidationError, match="serviceId"):
            parse_params(NotificationsParams, {"serviceId": "zz", "characteristicId": "2a19"})

    def test_read_start_notifications_default(self) -> None:
        params = parse_params(ReadParams, {"serviceId": "180f", "characteristicId": "2a19"})
        assert params.start_notifications is False

    def test_update_payload(self) -> None:
        params = parse_params(
            UpdateParams,
            {
                "serviceId": "180f",
                "characteristicId": "2a19",
                "message": "Zg==",
                "encoding": "base64",
                "withResponse": True,
            },
        )
        assert params.payload() == b"f"
        assert params.with_response is True

    def test_update_invalid_base64(self) -> None:
        params = parse_params(
            UpdateParams,
            {"serviceId": "180f", "characteristicId": "2a19", "message": "!!", "encoding": "base64"},
        )
        with pytest.raises(ParamValidationError, match="base64"):
            params.payload()

    def test_update_requires_message(self) -> None:
        with pytest.raises(ParamValidationError, match="message"):
            parse_params(UpdateParams, {"serviceId": "180f", "characteristicId": "2a19"})

"""Test the WebSocket endpoint through FastAPI's test client."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from fakes import ADDRESS, FakeAdapter
from scratchlink.config import LinkConfig
from scratchlink.exceptions import DeviceError
from scratchlink.server import create_app


def _client(adapter: FakeAdapter, **config) -> TestClient:
    return TestClient(create_app(LinkConfig(**config), adapter))


def test_get_version_over_websocket(adapter: FakeAdapter) -> None:
    with _client(adapter) as client:
        with client.websocket_connect("/scratch/ble") as ws:
            ws.send_json({"jsonrpc": "2.0", "id": 1, "method": "getVersion"})
            assert ws.receive_json() == {"id": 1, "jsonrpc": "2.0", "result": {"protocol": "1.3"}}

    assert adapter.enabled == 1


def test_unknown_method_is_silent(adapter: FakeAdapter) -> None:
    with _client(adapter) as client:
        with client.websocket_connect("/scratch/ble") as ws:
            ws.send_json({"jsonrpc": "2.0", "id": 1, "method": "foo"})
            ws.send_json({"jsonrpc": "2.0", "id": 2, "method": "getVersion"})
            assert ws.receive_json()["id"] == 2


def test_connect_and_disconnect_releases_device(adapter: FakeAdapter) -> None:
    with _client(adapter) as client:
        with client.websocket_connect("/scratch/ble") as ws:
            ws.send_json({"jsonrpc": "2.0", "id": 1, "method": "connect",
                          "params": {"peripheralId": ADDRESS}})
            assert ws.receive_json() == {"id": 1, "jsonrpc": "2.0", "result": None}
            assert len(client.app.state.sessions) == 1

    (device,) = adapter.connected
    assert device.disconnects == 1


def test_malformed_frame_closes_connection(adapter: FakeAdapter) -> None:
    with _client(adapter) as client:
        with client.websocket_connect("/scratch/ble") as ws:
            ws.send_text("{oops")
            with pytest.raises(WebSocketDisconnect) as excinfo:
                ws.receive_json()

    assert excinfo.value.code == 1007


def test_custom_path(adapter: FakeAdapter) -> None:
    with _client(adapter, path="/ble") as client:
        with client.websocket_connect("/ble") as ws:
            ws.send_json({"jsonrpc": "2.0", "id": 3, "method": "getVersion"})
            assert ws.receive_json()["id"] == 3


def test_adapter_enable_failure_does_not_stop_server(adapter: FakeAdapter) -> None:
    adapter.enable_error = DeviceError("no adapter")
    with _client(adapter) as client:
        with client.websocket_connect("/scratch/ble") as ws:
            ws.send_json({"jsonrpc": "2.0", "id": 1, "method": "getVersion"})
            assert ws.receive_json()["result"] == {"protocol": "1.3"}

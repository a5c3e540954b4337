"""Test the inbound request loop and the outbound channel."""

from __future__ import annotations

import asyncio
import threading

import pytest

from fakes import FakeTransport, request, settle
from scratchlink.channel import OutboundChannel, read_requests
from scratchlink.exceptions import ProtocolDecodeError
from scratchlink.protocol import Message, new_push, respond


async def _collect(transport: FakeTransport, max_frame_size: int = 65536) -> list[Message]:
    return [m async for m in read_requests(transport, max_frame_size)]


class TestReadRequests:
    @pytest.mark.asyncio
    async def test_yields_requests_in_order_until_end_of_stream(self) -> None:
        transport = FakeTransport([request(1, "getVersion"), request(2, "discover")])
        transport.end()

        messages = await _collect(transport)

        assert [(m.id, m.method) for m in messages] == [(1, "getVersion"), (2, "discover")]

    @pytest.mark.asyncio
    async def test_discards_frames_without_method(self) -> None:
        transport = FakeTransport([
            {"jsonrpc": "2.0", "id": 1, "result": None},
            {"jsonrpc": "2.0", "id": 2, "method": ""},
            request(3, "getVersion"),
        ])
        transport.end()

        messages = await _collect(transport)

        assert [m.id for m in messages] == [3]

    @pytest.mark.asyncio
    async def test_malformed_frame_raises(self) -> None:
        transport = FakeTransport(["{not json"])

        with pytest.raises(ProtocolDecodeError):
            await _collect(transport)

    @pytest.mark.asyncio
    async def test_oversize_frame_raises(self) -> None:
        transport = FakeTransport([request(1, "write", {"message": "A" * 500})])

        with pytest.raises(ProtocolDecodeError) as excinfo:
            await _collect(transport, max_frame_size=128)
        assert excinfo.value.oversize


class TestOutboundChannel:
    @pytest.mark.asyncio
    async def test_send_and_post_are_written_whole_and_in_queue_order(self) -> None:
        transport = FakeTransport()
        channel = OutboundChannel(transport)
        channel.start()

        await channel.send(respond(Message(id=1, method="getVersion"), {"protocol": "1.3"}))
        channel.post(new_push("didDiscoverPeripheral", {"name": "Foo"}))
        await channel.close()

        frames = transport.frames
        assert frames[0] == {"id": 1, "jsonrpc": "2.0", "result": {"protocol": "1.3"}}
        assert frames[1]["method"] == "didDiscoverPeripheral"
        assert channel.closed

    @pytest.mark.asyncio
    async def test_post_from_foreign_thread(self) -> None:
        """Radio callbacks may post from their own thread."""
        transport = FakeTransport()
        channel = OutboundChannel(transport)
        channel.start()

        thread = threading.Thread(
            target=channel.post, args=(new_push("characteristicDidChange", {}),)
        )
        thread.start()
        thread.join()
        await settle()
        await channel.close()

        assert [f["method"] for f in transport.frames] == ["characteristicDidChange"]

    @pytest.mark.asyncio
    async def test_full_queue_drops_pushes(self) -> None:
        transport = FakeTransport()
        channel = OutboundChannel(transport, maxsize=2)
        channel.start()

        # Writer has not run yet, so the queue fills up
        for _ in range(5):
            channel.post(new_push("didDiscoverPeripheral", {}))
        await channel.close()

        assert channel.dropped == 3
        assert len(transport.sent) == 2

    def test_post_before_start_fails(self) -> None:
        channel = OutboundChannel(FakeTransport())
        with pytest.raises(RuntimeError, match="not started"):
            channel.post(new_push("didDiscoverPeripheral", {}))

    @pytest.mark.asyncio
    async def test_closed_transport_stops_writer(self) -> None:
        transport = FakeTransport()
        transport.fail_sends = True
        channel = OutboundChannel(transport)
        channel.start()

        await channel.send(respond(Message(id=1, method="getVersion")))
        await settle()

        assert channel.closed
        # Later frames are ignored instead of blocking
        await channel.send(respond(Message(id=2, method="getVersion")))
        channel.post(new_push("didDiscoverPeripheral", {}))
        await asyncio.wait_for(channel.close(), timeout=1)

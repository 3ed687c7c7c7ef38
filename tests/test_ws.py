"""Test live event fan-out to dashboard clients."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from api.ws import LiveHub


class TestLiveHub:
    """Broadcast of monitor events."""

    @pytest.mark.asyncio
    async def test_broadcast_to_all_clients(self):
        hub = LiveHub()
        clients = [MagicMock(send_text=AsyncMock()) for _ in range(2)]
        for client in clients:
            hub.connect(client)

        await hub.broadcast({"type": "cleared", "data": {"deleted": 3}})

        for client in clients:
            sent = json.loads(client.send_text.await_args.args[0])
            assert sent["data"]["deleted"] == 3

    @pytest.mark.asyncio
    async def test_failed_client_is_dropped(self):
        hub = LiveHub()
        good = MagicMock(send_text=AsyncMock())
        gone = MagicMock(send_text=AsyncMock(side_effect=RuntimeError("closed")))
        hub.connect(good)
        hub.connect(gone)

        await hub.broadcast({"type": "transition", "data": {}})

        assert hub.active_connections == {good}
        good.send_text.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_clients_is_noop(self):
        await LiveHub().broadcast({"type": "transition"})

"""Unit tests for the websocket subscription client, using a fake connection."""

import asyncio
import json

import pytest
from unittest.mock import AsyncMock
from websockets.exceptions import ConnectionClosed

from pool_tracker.config import SolanaConfig
from pool_tracker.websocket import SolanaWebSocketClient, SubscriptionType


class FakeConnection:
    """In-memory stand-in for a websockets connection."""

    def __init__(self):
        self.sent = []
        self.incoming = asyncio.Queue()
        self.closed = False

    async def send(self, message):
        self.sent.append(json.loads(message))

    async def recv(self):
        message = await self.incoming.get()
        if message is None:
            raise ConnectionClosed(None, None)
        return message

    async def close(self):
        self.closed = True

    def feed(self, payload):
        self.incoming.put_nowait(json.dumps(payload))

    def drop(self):
        self.incoming.put_nowait(None)


async def wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


@pytest.fixture
def connections():
    return [FakeConnection(), FakeConnection()]


@pytest.fixture
def ws_client(connections):
    client = SolanaWebSocketClient(
        SolanaConfig(rpc_url="https://rpc.example.test", commitment="confirmed"),
        request_timeout=1.0,
        reconnect_delay=0,
    )
    client._open = AsyncMock(side_effect=connections)
    return client


async def subscribe(client, connection, callback, sub_id):
    task = asyncio.create_task(client.subscribe_logs({"mentions": ["pool"]}, callback))
    await wait_until(lambda: connection.sent)
    request = connection.sent[-1]
    connection.feed({"jsonrpc": "2.0", "id": request["id"], "result": sub_id})
    return await task


def test_websocket_url_derived_from_rpc():
    client = SolanaWebSocketClient(SolanaConfig(rpc_url="https://rpc.example.test"))

    assert client.ws_url == "wss://rpc.example.test"


@pytest.mark.asyncio
class TestSolanaWebSocketClient:
    """Test suite for SolanaWebSocketClient."""

    async def test_subscribe_logs(self, ws_client, connections):
        handle = await subscribe(ws_client, connections[0], lambda result: None, 7)

        assert handle == 1
        request = connections[0].sent[0]
        assert request["method"] == "logsSubscribe"
        assert request["params"] == [{"mentions": ["pool"]}, {"commitment": "confirmed"}]
        assert ws_client.subscriptions[handle]["type"] == SubscriptionType.LOGS
        assert ws_client.subscriptions[handle]["server_id"] == 7
        await ws_client.disconnect()

    async def test_notifications_reach_callback(self, ws_client, connections):
        received = []
        await subscribe(ws_client, connections[0], received.append, 7)

        connections[0].feed({
            "jsonrpc": "2.0",
            "method": "logsNotification",
            "params": {"subscription": 7, "result": {"value": {"signature": "abc"}}},
        })
        await wait_until(lambda: received)

        assert received == [{"value": {"signature": "abc"}}]
        await ws_client.disconnect()

    async def test_callback_errors_do_not_stop_listening(self, ws_client, connections):
        received = []

        def callback(result):
            received.append(result)
            raise RuntimeError("handler bug")

        await subscribe(ws_client, connections[0], callback, 7)
        for n in range(2):
            connections[0].feed({"method": "logsNotification",
                                 "params": {"subscription": 7, "result": n}})
        await wait_until(lambda: len(received) == 2)

        await ws_client.disconnect()

    async def test_error_response(self, ws_client, connections):
        task = asyncio.create_task(ws_client.subscribe_logs("all", lambda result: None))
        await wait_until(lambda: connections[0].sent)
        connections[0].feed({"id": connections[0].sent[0]["id"],
                             "error": {"code": -32602, "message": "bad filter"}})

        with pytest.raises(ValueError, match="bad filter"):
            await task
        await ws_client.disconnect()

    async def test_reconnect_restores_subscription(self, ws_client, connections):
        received = []
        handle = await subscribe(ws_client, connections[0], received.append, 7)

        connections[0].drop()
        await wait_until(lambda: connections[1].sent)
        request = connections[1].sent[0]
        assert request["method"] == "logsSubscribe"
        assert request["params"][0] == {"mentions": ["pool"]}
        connections[1].feed({"id": request["id"], "result": 9})
        await wait_until(lambda: ws_client.subscriptions[handle]["server_id"] == 9)

        connections[1].feed({"method": "logsNotification",
                             "params": {"subscription": 9, "result": "after"}})
        await wait_until(lambda: received)

        assert received == ["after"]
        assert list(ws_client.subscriptions) == [handle]
        await ws_client.disconnect()

    async def test_unsubscribe_after_reconnect_uses_new_server_id(self, ws_client, connections):
        handle = await subscribe(ws_client, connections[0], lambda result: None, 7)
        connections[0].drop()
        await wait_until(lambda: connections[1].sent)
        connections[1].feed({"id": connections[1].sent[0]["id"], "result": 9})
        await wait_until(lambda: ws_client.subscriptions[handle]["server_id"] == 9)

        task = asyncio.create_task(ws_client.unsubscribe(handle))
        await wait_until(lambda: len(connections[1].sent) == 2)
        request = connections[1].sent[1]
        connections[1].feed({"id": request["id"], "result": True})

        assert await task is True
        assert request["method"] == "logsUnsubscribe"
        assert request["params"] == [9]
        await ws_client.disconnect()

    async def test_unsubscribe(self, ws_client, connections):
        handle = await subscribe(ws_client, connections[0], lambda result: None, 7)

        task = asyncio.create_task(ws_client.unsubscribe(handle))
        await wait_until(lambda: len(connections[0].sent) == 2)
        request = connections[0].sent[1]
        connections[0].feed({"id": request["id"], "result": True})

        assert await task is True
        assert request["method"] == "logsUnsubscribe"
        assert request["params"] == [7]
        await ws_client.disconnect()

    async def test_unsubscribe_unknown(self, ws_client):
        assert await ws_client.unsubscribe(99) is False

    async def test_disconnect_closes_connection(self, ws_client, connections):
        await subscribe(ws_client, connections[0], lambda result: None, 7)

        await ws_client.disconnect()

        assert connections[0].closed
        assert ws_client.ws_connection is None
        assert ws_client.subscriptions == {}

"""WebSocket support for real-time Solana log notifications."""

import asyncio
import json
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from pool_tracker.config import SolanaConfig
from pool_tracker.logging_config import get_logger

logger = get_logger(__name__)

NotificationCallback = Callable[[Dict[str, Any]], None]


class SubscriptionType(str, Enum):
    """Types of WebSocket subscriptions."""

    LOGS = "logs"


class SolanaWebSocketClient:
    """Client for the Solana WebSocket pub/sub API.

    Subscriptions survive transport failures: after a reconnect every active
    subscription is re-issued and its callback keeps receiving notifications.
    Callers hold a local handle that stays valid across reconnects; the
    server-assigned id behind it changes with each re-issue.
    """

    def __init__(
        self,
        config: SolanaConfig,
        request_timeout: float = 30.0,
        reconnect_delay: float = 1.0
    ):
        """Initialize the WebSocket client.

        Args:
            config: Solana configuration
            request_timeout: Seconds to wait for a subscribe/unsubscribe answer
            reconnect_delay: Seconds to wait between reconnect attempts
        """
        self.ws_url = config.websocket_url
        self.config = config
        self.request_timeout = request_timeout
        self.reconnect_delay = reconnect_delay

        # Tracking subscriptions (by local handle) and requests
        self.subscriptions: Dict[int, Dict[str, Any]] = {}
        self._handles: Dict[int, int] = {}  # server subscription id -> handle
        self._next_handle = 0
        self.request_id = 0
        self.ws_connection = None
        self.running = False
        self.task: Optional[asyncio.Task] = None
        self._resubscribe_task: Optional[asyncio.Task] = None

        # Response handling
        self.response_futures: Dict[int, asyncio.Future] = {}

    def _get_next_id(self) -> int:
        """Get the next request ID.

        Returns:
            The next request ID
        """
        self.request_id += 1
        return self.request_id

    async def _open(self):
        return await websockets.connect(
            self.ws_url,
            max_size=None,  # No limit on message size
            ping_interval=20,
            ping_timeout=20
        )

    async def connect(self):
        """Connect to the WebSocket server."""
        if self.ws_connection is not None:
            return

        self.ws_connection = await self._open()
        logger.info(f"WebSocket connected: {self.ws_url}")

        self.running = True
        self.task = asyncio.create_task(self._listen())

    async def disconnect(self):
        """Disconnect from the WebSocket server."""
        self.running = False

        for task in (self.task, self._resubscribe_task):
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self.task = None
        self._resubscribe_task = None

        if self.ws_connection is not None:
            await self.ws_connection.close()
            self.ws_connection = None

        for future in self.response_futures.values():
            if not future.done():
                future.cancel()
        self.response_futures.clear()
        self.subscriptions.clear()
        self._handles.clear()

    async def _listen(self):
        """Listen for WebSocket messages."""
        while self.running:
            try:
                msg = await self.ws_connection.recv()
            except ConnectionClosed:
                if not self.running:
                    break
                logger.warning("WebSocket connection closed, reconnecting")
                await self._reconnect()
                continue

            try:
                self._dispatch(json.loads(msg))
            except (ValueError, KeyError, TypeError) as e:
                logger.error(f"Malformed WebSocket message: {str(e)}")

    def _dispatch(self, data: Dict[str, Any]):
        method = data.get("method", "")
        if method.endswith("Notification"):
            params = data["params"]
            handle = self._handles.get(params["subscription"])
            subscription = self.subscriptions.get(handle)
            if subscription is None:
                return
            try:
                subscription["callback"](params["result"])
            except Exception as e:
                logger.error(f"Error in notification callback: {str(e)}", exc_info=True)
        elif "id" in data:
            future = self.response_futures.pop(data["id"], None)
            if future and not future.done():
                if "error" in data:
                    future.set_exception(
                        ValueError(f"WebSocket error: {data['error']}")
                    )
                else:
                    future.set_result(data.get("result"))

    async def _reconnect(self):
        """Re-open the transport and re-issue active subscriptions."""
        self.ws_connection = None
        for future in self.response_futures.values():
            if not future.done():
                future.set_exception(ConnectionError("WebSocket connection lost"))
        self.response_futures.clear()

        while self.running:
            await asyncio.sleep(self.reconnect_delay)
            try:
                self.ws_connection = await self._open()
            except (OSError, WebSocketException) as e:
                logger.warning(f"WebSocket reconnect failed: {str(e)}")
                continue
            logger.info(f"WebSocket reconnected: {self.ws_url}")
            break

        if self.running and self.subscriptions:
            # Responses are read by the listen loop, so resubscribe concurrently
            self._resubscribe_task = asyncio.create_task(self._resubscribe())

    async def _resubscribe(self):
        self._handles.clear()
        for handle, subscription in list(self.subscriptions.items()):
            try:
                await self._subscribe(
                    subscription["type"],
                    subscription["params"],
                    subscription["callback"],
                    handle=handle
                )
            except (ValueError, ConnectionError, ConnectionClosed) as e:
                self.subscriptions.pop(handle, None)
                logger.error(f"Failed to restore {subscription['type'].value} subscription: {str(e)}")

    async def _send_request(self, method: str, params: List[Any]) -> Any:
        """Send a JSON-RPC request over WebSocket.

        Args:
            method: The RPC method
            params: The parameters

        Returns:
            The response result
        """
        if not self.ws_connection:
            await self.connect()

        request_id = self._get_next_id()
        request = {
            "jsonrpc": "2.0",
            "id": request_id,
            "method": method,
            "params": params
        }

        future = asyncio.get_running_loop().create_future()
        self.response_futures[request_id] = future

        await self.ws_connection.send(json.dumps(request))

        try:
            return await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            self.response_futures.pop(request_id, None)
            raise ValueError(f"WebSocket request timed out: {method}")

    async def _subscribe(
        self,
        sub_type: SubscriptionType,
        params: List[Any],
        callback: NotificationCallback,
        handle: Optional[int] = None
    ) -> int:
        server_id = await self._send_request(f"{sub_type.value}Subscribe", params)
        if handle is None:
            self._next_handle += 1
            handle = self._next_handle
        self.subscriptions[handle] = {
            "type": sub_type,
            "params": params,
            "callback": callback,
            "server_id": server_id
        }
        self._handles[server_id] = handle
        return handle

    async def subscribe_logs(
        self,
        filter_value: Union[str, Dict[str, List[str]]],
        callback: NotificationCallback,
        commitment: Optional[str] = None
    ) -> int:
        """Subscribe to transaction logs.

        Args:
            filter_value: "all", "allWithVotes", or {"mentions": [<address>]}
            callback: Called with each notification's ``result`` object
            commitment: The commitment level

        Returns:
            Local subscription handle, valid across reconnects
        """
        params = [
            filter_value,
            {
                "commitment": commitment or self.config.commitment
            }
        ]
        return await self._subscribe(SubscriptionType.LOGS, params, callback)

    async def unsubscribe(self, handle: int) -> bool:
        """Unsubscribe from updates.

        Args:
            handle: Handle returned when subscribing

        Returns:
            Whether the unsubscribe was successful
        """
        subscription = self.subscriptions.pop(handle, None)
        if subscription is None:
            return False
        server_id = subscription["server_id"]
        self._handles.pop(server_id, None)
        if self.ws_connection is None:
            return False

        method = f"{subscription['type'].value}Unsubscribe"
        return bool(await self._send_request(method, [server_id]))

"""Live tail of pool transactions via log subscriptions."""

import asyncio
from typing import Any, Dict, Optional, Set

from websockets.exceptions import WebSocketException

from pool_tracker.config import RetryConfig
from pool_tracker.decorators import with_retry
from pool_tracker.hub import TradeStreamHub
from pool_tracker.inference import TradeInferrer
from pool_tracker.logging_config import get_logger
from pool_tracker.models import Trade
from pool_tracker.solana_client import SolanaClient
from pool_tracker.websocket import SolanaWebSocketClient

logger = get_logger(__name__)


class LiveTradeListener:
    """Publishes a trade for every new pool transaction that is one.

    Each log notification is handled in its own task, so a slow or failing
    fetch never delays or cancels the handling of later notifications.

    Args:
        client: RPC client used to fetch notified transactions
        ws_client: Websocket client carrying the log subscription
        inferrer: Shared trade inferrer
        hub: Hub that receives inferred trades
        pool_address: Address whose mentions are subscribed to
        commitment: Commitment level of the subscription
        retry_config: Rate-limit retry settings for transaction fetches
    """

    def __init__(
        self,
        client: SolanaClient,
        ws_client: SolanaWebSocketClient,
        inferrer: TradeInferrer,
        hub: TradeStreamHub,
        pool_address: str,
        commitment: str = "confirmed",
        retry_config: RetryConfig = None,
    ):
        self.client = client
        self.ws_client = ws_client
        self.inferrer = inferrer
        self.hub = hub
        self.pool_address = pool_address
        self.commitment = commitment
        self.retry_config = retry_config or RetryConfig()
        # Websocket client handle, stable across reconnects
        self.subscription_id: Optional[int] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def active(self) -> bool:
        return self.subscription_id is not None

    async def start(self):
        """Open the log subscription for the pool address."""
        logger.info("Starting listener")
        self.subscription_id = await self.ws_client.subscribe_logs(
            {"mentions": [self.pool_address]},
            self.on_logs,
            commitment=self.commitment,
        )
        logger.info("Listener active")

    def on_logs(self, result: Dict[str, Any]):
        """Websocket callback: schedule handling of the notified signature."""
        value = result.get("value") or {}
        signature = value.get("signature")
        if not signature:
            return
        logger.info(f"New tx: {signature[:16]}...")

        task = asyncio.create_task(self.handle_signature(signature))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def handle_signature(self, signature: str) -> Optional[Trade]:
        """Fetch, infer and publish one transaction; errors are only logged."""
        try:
            tx = await with_retry(
                lambda: self.client.get_parsed_transaction(signature),
                max_retries=self.retry_config.max_retries,
                delay=self.retry_config.base_delay,
            )
        except Exception as e:
            logger.error(f"Error processing {signature[:16]}...: {str(e)}")
            return None

        trade = self.inferrer.infer(tx)
        if trade is not None:
            self.hub.publish(trade)
        return trade

    async def stop(self):
        """Drop the subscription and cancel in-flight handlers."""
        if self.subscription_id is not None:
            try:
                await self.ws_client.unsubscribe(self.subscription_id)
            except (ValueError, ConnectionError, WebSocketException) as e:
                logger.warning(f"Unsubscribe failed: {str(e)}")
            self.subscription_id = None

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

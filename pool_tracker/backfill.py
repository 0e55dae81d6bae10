"""Historical trade backfill for the tracked pool."""

import asyncio
from datetime import datetime
from typing import Any, Dict, List

from pool_tracker.config import RetryConfig
from pool_tracker.constants import MAX_SIGNATURES_PER_PAGE
from pool_tracker.decorators import with_retry
from pool_tracker.hub import TradeStreamHub
from pool_tracker.inference import TradeInferrer
from pool_tracker.logging_config import get_logger
from pool_tracker.models import Trade
from pool_tracker.solana_client import SolanaClient

logger = get_logger(__name__)

THROTTLE_EVERY = 25
THROTTLE_PAUSE = 0.12  # seconds
LOGGED_SAMPLE_SIZE = 5


class HistoryBackfill:
    """Rebuilds the trade history from the pool's signature history.

    Args:
        client: RPC client
        inferrer: Shared trade inferrer
        hub: Hub whose history is replaced by :meth:`run`
        pool_address: Address whose signature history is scanned
        retry_config: Rate-limit retry settings for every RPC call
    """

    def __init__(
        self,
        client: SolanaClient,
        inferrer: TradeInferrer,
        hub: TradeStreamHub,
        pool_address: str,
        retry_config: RetryConfig = None,
    ):
        self.client = client
        self.inferrer = inferrer
        self.hub = hub
        self.pool_address = pool_address
        self.retry_config = retry_config or RetryConfig()

    async def _retry(self, func):
        return await with_retry(
            func,
            max_retries=self.retry_config.max_retries,
            delay=self.retry_config.base_delay,
        )

    async def fetch_signatures(self, total_limit: int) -> List[Dict[str, Any]]:
        """Collect up to ``total_limit`` signature infos, newest first.

        Pages backwards from the newest signature, using the oldest signature
        seen so far as the cursor for the next page.
        """
        signatures: List[Dict[str, Any]] = []
        before = None

        while len(signatures) < total_limit:
            page_limit = min(MAX_SIGNATURES_PER_PAGE, total_limit - len(signatures))
            page = await self._retry(
                lambda: self.client.get_signatures_for_address(
                    self.pool_address, before=before, limit=page_limit
                )
            )
            if not page:
                break

            signatures.extend(page)
            before = page[-1]["signature"]

            if len(page) < page_limit:
                break

        logger.info(f"Found {len(signatures)} signatures")
        return signatures

    async def fetch_trades(self, total_limit: int) -> List[Trade]:
        """Fetch and infer the trades among the newest ``total_limit`` transactions.

        Returns:
            Trades sorted by timestamp, newest first
        """
        logger.info(f"Fetching last {total_limit} transactions")
        signatures = await self.fetch_signatures(total_limit)

        trades: List[Trade] = []
        for info in signatures:
            signature = info["signature"]
            try:
                tx = await self._retry(
                    lambda: self.client.get_parsed_transaction(signature)
                )
            except Exception as e:
                logger.warning(f"Skipping transaction {signature[:16]}...: {str(e)}")
                continue

            trade = self.inferrer.infer(tx)
            if trade is None:
                continue

            trades.append(trade)
            if len(trades) <= LOGGED_SAMPLE_SIZE:
                time_str = datetime.fromtimestamp(trade.timestamp / 1000).strftime("%H:%M:%S")
                logger.info(
                    f"  {trade.trade_type.value.upper()} | {trade.token_amount:.0f} token for "
                    f"{trade.native_amount:.4f} native | {time_str} | {trade.trader_prefix}"
                )

            if len(trades) % THROTTLE_EVERY == 0:
                await asyncio.sleep(THROTTLE_PAUSE)

        trades.sort(key=lambda trade: trade.timestamp, reverse=True)
        return trades

    async def run(self, total_limit: int) -> int:
        """Backfill the hub's history; returns the number of trades loaded."""
        trades = await self.fetch_trades(total_limit)
        self.hub.replace_history(trades)
        logger.info(f"Loaded {len(trades)} historical trades")
        return len(trades)

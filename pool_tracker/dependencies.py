"""
Service wiring and FastAPI dependency providers for the tracker API.

All long-lived objects are created once by :func:`build_services` and stored
on ``app.state`` so route handlers share them through :func:`get_services`.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from pool_tracker.backfill import HistoryBackfill
from pool_tracker.config import (
    PoolConfig,
    RetryConfig,
    SolanaConfig,
    get_pool_config,
    get_retry_config,
    get_solana_config,
)
from pool_tracker.holders import HolderCountAggregator
from pool_tracker.hub import TradeStreamHub
from pool_tracker.inference import TradeInferrer
from pool_tracker.listener import LiveTradeListener
from pool_tracker.logging_config import get_logger
from pool_tracker.pool_api import PoolInfoClient
from pool_tracker.solana_client import SolanaClient
from pool_tracker.websocket import SolanaWebSocketClient

logger = get_logger(__name__)


@dataclass
class TrackerServices:
    """Everything the HTTP layer and the background pipelines share."""

    solana_config: SolanaConfig
    pool_config: PoolConfig
    client: SolanaClient
    ws_client: SolanaWebSocketClient
    hub: TradeStreamHub
    inferrer: TradeInferrer
    backfill: HistoryBackfill
    listener: LiveTradeListener
    holders: HolderCountAggregator
    pool_info: PoolInfoClient

    async def close(self):
        """Stop the listener and release network resources."""
        await self.listener.stop()
        self.hub.close()
        await self.ws_client.disconnect()
        await self.pool_info.close()
        await self.client.close()


def build_services(
    solana_config: Optional[SolanaConfig] = None,
    pool_config: Optional[PoolConfig] = None,
    retry_config: Optional[RetryConfig] = None,
) -> TrackerServices:
    """Create the tracker's service graph from configuration."""
    solana_config = solana_config or get_solana_config()
    pool_config = pool_config or get_pool_config()
    retry_config = retry_config or get_retry_config()

    client = SolanaClient(solana_config)
    ws_client = SolanaWebSocketClient(solana_config)
    hub = TradeStreamHub(
        capacity=pool_config.history_capacity,
        replay_limit=pool_config.replay_limit,
        keepalive_interval=pool_config.keepalive_interval,
    )
    inferrer = TradeInferrer(
        token_mint=pool_config.token_mint,
        base_mint=pool_config.base_mint,
        native_decimals=pool_config.native_decimals,
    )

    return TrackerServices(
        solana_config=solana_config,
        pool_config=pool_config,
        client=client,
        ws_client=ws_client,
        hub=hub,
        inferrer=inferrer,
        backfill=HistoryBackfill(client, inferrer, hub, pool_config.pool_id, retry_config),
        listener=LiveTradeListener(
            client, ws_client, inferrer, hub, pool_config.pool_id,
            commitment=solana_config.commitment,
            retry_config=retry_config,
        ),
        holders=HolderCountAggregator(client, ttl=pool_config.holders_cache_ttl),
        pool_info=PoolInfoClient(pool_config.pool_api_url),
    )


def get_services(request: Request) -> TrackerServices:
    """FastAPI dependency returning the application's services."""
    return request.app.state.services

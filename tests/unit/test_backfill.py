"""Unit tests for the history backfill."""

import pytest
from unittest.mock import AsyncMock, patch

from pool_tracker.backfill import HistoryBackfill
from pool_tracker.constants import MAX_SIGNATURES_PER_PAGE
from pool_tracker.solana_client import SolanaRpcError


def signature_page(start, count):
    return [{"signature": f"sig{i}", "slot": 1000 - i} for i in range(start, start + count)]


@pytest.fixture
def backfill(mock_solana_client, inferrer, hub, pool_address, fast_retry_config):
    return HistoryBackfill(mock_solana_client, inferrer, hub, pool_address, fast_retry_config)


@pytest.mark.asyncio
class TestFetchSignatures:
    """Paging through the pool's signature history."""

    async def test_pages_with_cursor(self, backfill, mock_solana_client, pool_address):
        mock_solana_client.get_signatures_for_address.side_effect = [
            signature_page(0, MAX_SIGNATURES_PER_PAGE),
            signature_page(MAX_SIGNATURES_PER_PAGE, 200),
        ]

        signatures = await backfill.fetch_signatures(1500)

        assert len(signatures) == 1200
        calls = mock_solana_client.get_signatures_for_address.await_args_list
        assert calls[0].args == (pool_address,)
        assert calls[0].kwargs == {"before": None, "limit": 1000}
        assert calls[1].kwargs == {"before": "sig999", "limit": 500}

    async def test_stops_at_limit(self, backfill, mock_solana_client):
        mock_solana_client.get_signatures_for_address.return_value = signature_page(0, 10)

        signatures = await backfill.fetch_signatures(10)

        assert len(signatures) == 10
        mock_solana_client.get_signatures_for_address.assert_awaited_once()

    async def test_stops_on_empty_page(self, backfill, mock_solana_client):
        mock_solana_client.get_signatures_for_address.side_effect = [
            signature_page(0, MAX_SIGNATURES_PER_PAGE),
            [],
        ]

        signatures = await backfill.fetch_signatures(3000)

        assert len(signatures) == MAX_SIGNATURES_PER_PAGE
        assert mock_solana_client.get_signatures_for_address.await_count == 2

    async def test_retries_rate_limited_pages(self, backfill, mock_solana_client):
        mock_solana_client.get_signatures_for_address.side_effect = [
            SolanaRpcError("429 Too Many Requests", status_code=429),
            signature_page(0, 3),
        ]

        assert len(await backfill.fetch_signatures(10)) == 3


@pytest.mark.asyncio
class TestRun:
    """End-to-end backfill into the hub."""

    async def test_replaces_history_newest_first(self, backfill, mock_solana_client, hub,
                                                 make_transaction):
        mock_solana_client.get_signatures_for_address.return_value = signature_page(0, 4)
        transactions = {
            "sig0": make_transaction(block_time=300, signature="sig0"),
            "sig1": make_transaction(token_pre=1000.0, token_post=1000.0, signature="sig1"),
            "sig2": make_transaction(block_time=500, signature="sig2"),
            "sig3": make_transaction(block_time=100, signature="sig3"),
        }
        mock_solana_client.get_parsed_transaction.side_effect = lambda sig: transactions[sig]

        loaded = await backfill.run(4)

        assert loaded == 3
        assert [t.signature for t in hub.history()] == ["sig2", "sig0", "sig3"]

    async def test_skips_failed_transactions(self, backfill, mock_solana_client, hub,
                                             make_transaction):
        mock_solana_client.get_signatures_for_address.return_value = signature_page(0, 2)
        mock_solana_client.get_parsed_transaction.side_effect = [
            SolanaRpcError("Solana RPC error: not found"),
            make_transaction(signature="sig1"),
        ]

        assert await backfill.run(2) == 1
        assert hub.history()[0].signature == "sig1"

    async def test_skips_missing_transactions(self, backfill, mock_solana_client, hub):
        mock_solana_client.get_signatures_for_address.return_value = signature_page(0, 1)
        mock_solana_client.get_parsed_transaction.return_value = None

        assert await backfill.run(1) == 0
        assert hub.history() == []

    async def test_throttles_every_25_trades(self, backfill, mock_solana_client, make_transaction):
        mock_solana_client.get_signatures_for_address.return_value = signature_page(0, 60)
        mock_solana_client.get_parsed_transaction.side_effect = (
            lambda sig: make_transaction(signature=sig)
        )

        with patch("pool_tracker.backfill.asyncio.sleep", new_callable=AsyncMock) as sleep:
            trades = await backfill.fetch_trades(60)

        assert len(trades) == 60
        assert [c.args[0] for c in sleep.await_args_list] == [0.12, 0.12]

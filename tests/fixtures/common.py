"""Common test fixtures for Pool Trade Tracker tests.

This module provides fixtures that can be reused across different test modules.
"""

import pytest
from unittest.mock import AsyncMock

from pool_tracker.config import RetryConfig
from pool_tracker.constants import DEFAULT_POOL_ID, DEFAULT_TOKEN_MINT, NATIVE_MINT
from pool_tracker.hub import TradeStreamHub
from pool_tracker.inference import TradeInferrer
from pool_tracker.models import Trade, TradeType
from pool_tracker.solana_client import SolanaClient

TRADER = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
POOL_VAULT_OWNER = "5Q544fKrFoe6tsEbD7S8EmxGTJYAKtTVhAW5Q5pge4j1"
BLOCK_TIME = 1_700_000_000
FIXED_NOW = 1_800_000_000.5


@pytest.fixture
def trader():
    """Fee payer used by the sample transactions."""
    return TRADER


@pytest.fixture
def token_mint():
    return DEFAULT_TOKEN_MINT


@pytest.fixture
def base_mint():
    return NATIVE_MINT


@pytest.fixture
def pool_address():
    return DEFAULT_POOL_ID


@pytest.fixture
def inferrer():
    """Inferrer tracking the default mints with a frozen clock."""
    return TradeInferrer(
        token_mint=DEFAULT_TOKEN_MINT,
        base_mint=NATIVE_MINT,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def hub():
    """Small hub so capacity limits are easy to hit."""
    return TradeStreamHub(capacity=10, replay_limit=5, keepalive_interval=3600)


@pytest.fixture
def mock_solana_client():
    """Create a mock Solana client."""
    return AsyncMock(spec=SolanaClient)


@pytest.fixture
def fast_retry_config():
    """Retry settings that never actually wait long."""
    return RetryConfig(max_retries=2, base_delay=0)


def _token_balance(index, mint, owner, amount):
    return {
        "accountIndex": index,
        "mint": mint,
        "owner": owner,
        "uiTokenAmount": {"uiAmount": amount},
    }


@pytest.fixture
def make_transaction():
    """Factory for jsonParsed transactions with chosen balance movements.

    Token amounts are UI units; lamport amounts are raw lamports. Pass
    ``None`` for a side to leave that balance table out.
    """
    def factory(
        token_pre=1000.0,
        token_post=1200.0,
        base_token_pre=None,
        base_token_post=None,
        lamports_pre=5_000_000_000,
        lamports_post=4_000_000_000,
        owner=TRADER,
        signature="5VERv8NMvzbJMEkV8xnrLkEaWRtSz9CosKDYjCJjBRnbJLgp8uirBgmQpjKhoR4tjF3ZpRzrFmBV6UjKdiSZkQUW",
        block_time=BLOCK_TIME,
        slot=250_000_000,
        parsed_keys=True,
    ):
        keys = [TRADER, POOL_VAULT_OWNER]
        if parsed_keys:
            keys = [{"pubkey": key, "signer": i == 0, "writable": True} for i, key in enumerate(keys)]

        pre_tokens = [_token_balance(2, DEFAULT_TOKEN_MINT, owner, token_pre),
                      _token_balance(3, DEFAULT_TOKEN_MINT, POOL_VAULT_OWNER, 50_000.0)]
        post_tokens = [_token_balance(2, DEFAULT_TOKEN_MINT, owner, token_post),
                       _token_balance(3, DEFAULT_TOKEN_MINT, POOL_VAULT_OWNER, 49_800.0)]
        if base_token_pre is not None:
            pre_tokens.append(_token_balance(4, NATIVE_MINT, owner, base_token_pre))
            post_tokens.append(_token_balance(4, NATIVE_MINT, owner, base_token_post))

        tx = {
            "slot": slot,
            "blockTime": block_time,
            "meta": {
                "err": None,
                "fee": 5000,
                "preBalances": [lamports_pre, 2_039_280],
                "postBalances": [lamports_post, 2_039_280],
                "preTokenBalances": pre_tokens,
                "postTokenBalances": post_tokens,
            },
            "transaction": {
                "signatures": [signature] if signature else [],
                "message": {"accountKeys": keys},
            },
        }
        return tx

    return factory


@pytest.fixture
def make_trade():
    """Factory for trade records."""
    def factory(trade_id=1, timestamp=BLOCK_TIME * 1000, trade_type=TradeType.BUY,
                signature=None):
        return Trade(
            id=trade_id,
            signature=signature or f"sig{trade_id}",
            trade_type=trade_type,
            token_amount=200.0,
            native_amount=1.0,
            price=0.005 if trade_type.is_swap else None,
            trader_address=TRADER,
            trader_prefix=TRADER[:6],
            timestamp=timestamp,
            slot=100 + trade_id,
        )

    return factory

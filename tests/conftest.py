"""Test configuration for pytest.

This module imports fixtures that should be available to all tests.
"""

# Import fixtures
from tests.fixtures.common import (  # noqa
    trader,
    token_mint,
    base_mint,
    pool_address,
    inferrer,
    hub,
    mock_solana_client,
    fast_retry_config,
    make_transaction,
    make_trade,
)

"""Pool Trade Tracker package.

Streams swap and liquidity activity for a single liquidity pool on a
Solana-family chain, reconstructing trades from parsed transactions.
"""

__version__ = "0.1.0"
__author__ = "Pool Tracker Contributors"
__email__ = "maintainers@pool-tracker.dev"

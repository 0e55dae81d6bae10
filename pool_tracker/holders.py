"""Token-2022 holder counts, cached per mint."""

import base64
import time
from typing import Any, Callable, Dict, List

from cachetools import TTLCache

from pool_tracker.constants import (
    TOKEN_2022_PROGRAM_ID,
    TOKEN_ACCOUNT_AMOUNT_LENGTH,
    TOKEN_ACCOUNT_AMOUNT_OFFSET,
    TOKEN_ACCOUNT_MINT_OFFSET,
)
from pool_tracker.logging_config import get_logger
from pool_tracker.models import HolderStats
from pool_tracker.solana_client import SolanaClient

logger = get_logger(__name__)


class MintNotFoundError(LookupError):
    """Raised when a mint address has no account on the connected network."""

    def __init__(self, mint: str):
        super().__init__("Mint account not found on this RPC/network.")
        self.mint = mint


def decode_account_data(data: Any) -> bytes:
    """Decode the ``data`` member of a base64-encoded RPC account."""
    if isinstance(data, list):
        data = data[0]
    return base64.b64decode(data or "")


def read_u64_le(raw: bytes) -> int:
    """Read an unsigned little-endian 64-bit integer from the first 8 bytes."""
    return int.from_bytes(raw[:8].ljust(8, b"\x00"), "little")


class HolderCountAggregator:
    """Counts funded and empty token accounts for a mint.

    Only the most recent mint is cached; asking for another mint evicts it.
    Concurrent requests for a stale entry each recompute.

    Args:
        client: RPC client
        ttl: Cache lifetime in seconds
        program_id: Token program whose accounts are scanned
        clock: Returns the current time in seconds
    """

    def __init__(
        self,
        client: SolanaClient,
        ttl: float = 600.0,
        program_id: str = TOKEN_2022_PROGRAM_ID,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.ttl = ttl
        self.program_id = program_id
        self.clock = clock
        self._cache: TTLCache = TTLCache(maxsize=1, ttl=ttl, timer=clock)

    def is_fresh(self, stats: HolderStats) -> bool:
        return (self.clock() * 1000 - stats.updated_at) < self.ttl * 1000

    async def get_holders(self, mint: str) -> HolderStats:
        """Return holder stats for ``mint``, recomputing when the cache is stale.

        Raises:
            MintNotFoundError: If the mint account does not exist
            SolanaRpcError: If an RPC call fails
        """
        stats = self._cache.get(mint)
        if stats is not None:
            logger.debug(f"Holder cache hit for {mint}")
            return stats

        stats = await self.compute(mint)
        self._cache[mint] = stats
        return stats

    async def compute(self, mint: str) -> HolderStats:
        """Scan every token account of ``mint`` and count balances."""
        now_ms = int(self.clock() * 1000)

        mint_info = await self.client.get_account_info(mint)
        if not mint_info or mint_info.get("value") is None:
            raise MintNotFoundError(mint)

        accounts: List[Dict[str, Any]] = await self.client.get_program_accounts(
            self.program_id,
            filters=[{"memcmp": {"offset": TOKEN_ACCOUNT_MINT_OFFSET, "bytes": mint}}],
            data_slice={"offset": TOKEN_ACCOUNT_AMOUNT_OFFSET, "length": TOKEN_ACCOUNT_AMOUNT_LENGTH},
        )

        holders = 0
        zero = 0
        for entry in accounts:
            amount = read_u64_le(decode_account_data(entry["account"]["data"]))
            if amount > 0:
                holders += 1
            else:
                zero += 1

        logger.info(f"Counted {holders} holders of {mint} across {len(accounts)} accounts")
        return HolderStats(
            mint=mint,
            holders=holders,
            total_token_accounts=len(accounts),
            zero_balance_accounts=zero,
            updated_at=now_ms,
        )

"""Discovery of the token mints a pool trades.

Used to find the values for ``BASE_MINT`` and ``TOKEN_MINT`` when pointing
the tracker at a new pool.
"""

from typing import Any, Dict, List

import base58

from pool_tracker.constants import (
    TOKEN_ACCOUNT_AMOUNT_LENGTH,
    TOKEN_ACCOUNT_AMOUNT_OFFSET,
    TOKEN_ACCOUNT_MINT_LENGTH,
    TOKEN_ACCOUNT_MINT_OFFSET,
    TOKEN_PROGRAM_ID,
)
from pool_tracker.holders import decode_account_data, read_u64_le
from pool_tracker.logging_config import get_logger
from pool_tracker.models import PoolMintReport
from pool_tracker.solana_client import SolanaClient

logger = get_logger(__name__)


class PoolNotFoundError(LookupError):
    """Raised when the pool address has no account on the connected network."""

    def __init__(self, pool: str):
        super().__init__(f"Pool account not found: {pool}")
        self.pool = pool


def parse_token_account(pubkey: str, raw: bytes) -> Dict[str, Any]:
    """Extract mint and raw amount from SPL token account bytes."""
    mint_end = TOKEN_ACCOUNT_MINT_OFFSET + TOKEN_ACCOUNT_MINT_LENGTH
    amount_end = TOKEN_ACCOUNT_AMOUNT_OFFSET + TOKEN_ACCOUNT_AMOUNT_LENGTH
    if len(raw) < amount_end:
        raise ValueError(f"Token account {pubkey} is too short ({len(raw)} bytes)")
    return {
        "account": pubkey,
        "mint": base58.b58encode(raw[TOKEN_ACCOUNT_MINT_OFFSET:mint_end]).decode("ascii"),
        "amount": read_u64_le(raw[TOKEN_ACCOUNT_AMOUNT_OFFSET:amount_end]),
    }


def transaction_mints(tx: Dict[str, Any]) -> List[str]:
    """Mints appearing in a transaction's pre/post token balance tables."""
    meta = (tx or {}).get("meta") or {}
    mints = set()
    for balance in (meta.get("preTokenBalances") or []) + (meta.get("postTokenBalances") or []):
        if balance.get("mint"):
            mints.add(balance["mint"])
    return sorted(mints)


async def discover_pool_mints(
    client: SolanaClient,
    pool: str,
    program_id: str = TOKEN_PROGRAM_ID,
    signature_limit: int = 5,
    inspect_limit: int = 3,
) -> PoolMintReport:
    """Inspect a pool's token accounts and recent transactions for mints.

    Args:
        client: RPC client
        pool: Pool account address
        program_id: Token program whose accounts owned by the pool are listed
        signature_limit: Recent signatures requested
        inspect_limit: How many of those transactions are fetched

    Raises:
        PoolNotFoundError: If the pool account does not exist
    """
    info = await client.get_account_info(pool)
    account = (info or {}).get("value")
    if account is None:
        raise PoolNotFoundError(pool)

    report = PoolMintReport(
        pool=pool,
        owner=account.get("owner"),
        data_size=len(decode_account_data(account.get("data"))),
    )

    for entry in await client.get_token_accounts_by_owner(pool, program_id=program_id):
        raw = decode_account_data(entry["account"]["data"])
        try:
            report.token_accounts.append(parse_token_account(entry["pubkey"], raw))
        except ValueError as e:
            logger.warning(str(e))

    signatures = await client.get_signatures_for_address(pool, limit=signature_limit)
    for info in signatures[:inspect_limit]:
        tx = await client.get_parsed_transaction(info["signature"])
        if tx and tx.get("meta"):
            report.transaction_mints[info["signature"]] = transaction_mints(tx)

    return report

"""Trade inference from parsed transaction balance deltas.

A swap or liquidity event against the pool is recognised purely from how the
fee payer's balances moved:

    token change   base change   result
    ------------   -----------   ---------
         -              -        lp_add
         +              +        lp_remove
         +              -        buy
         -              +        sell

The base asset change is taken from the trader's wrapped-native token account
when one moved, otherwise from the trader's raw lamport balance. Lamport
deltas include the transaction fee, so the native amount of a native-settled
trade is approximate.
"""

import itertools
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from pool_tracker.constants import NATIVE_DECIMALS, UNKNOWN_SIGNATURE, UNKNOWN_TRADER
from pool_tracker.logging_config import get_logger
from pool_tracker.models import Trade, TradeType

logger = get_logger(__name__)

TRADER_PREFIX_LENGTH = 6


def account_key_address(key: Any) -> str:
    """Return the base58 address of an account key entry.

    ``jsonParsed`` transactions list keys as ``{"pubkey": ..., "signer": ...}``
    objects, other encodings as plain strings.
    """
    if isinstance(key, str):
        return key
    if isinstance(key, dict) and key.get("pubkey"):
        return str(key["pubkey"])
    return str(key)


def classify_trade(token_change: float, base_change: float) -> Optional[TradeType]:
    """Map the sign pair of the two balance changes to a trade type.

    Returns:
        The trade type, or None when either change is zero
    """
    if token_change < 0 and base_change < 0:
        return TradeType.LP_ADD
    if token_change > 0 and base_change > 0:
        return TradeType.LP_REMOVE
    if token_change > 0 and base_change < 0:
        return TradeType.BUY
    if token_change < 0 and base_change > 0:
        return TradeType.SELL
    return None


def _ui_amount(balance: Dict[str, Any]) -> float:
    amount = (balance.get("uiTokenAmount") or {}).get("uiAmount")
    return float(amount) if amount is not None else 0.0


class TradeInferrer:
    """Turns parsed transactions into :class:`Trade` records.

    Args:
        token_mint: Mint of the priced token
        base_mint: Mint of the wrapped base asset
        native_decimals: Decimals of the chain's native asset
        clock: Returns the current time in seconds; used when a transaction
            has no block time
    """

    def __init__(
        self,
        token_mint: str,
        base_mint: str,
        native_decimals: int = NATIVE_DECIMALS,
        clock: Callable[[], float] = time.time,
    ):
        self.token_mint = token_mint
        self.base_mint = base_mint
        self.lamports_per_native = 10 ** native_decimals
        self.clock = clock
        self._ids = itertools.count(1)

    def infer(self, tx: Optional[Dict[str, Any]]) -> Optional[Trade]:
        """Reconstruct the trade performed by a transaction, if any.

        Malformed input never raises; it is logged and treated as no trade.

        Args:
            tx: Transaction as returned by ``getTransaction`` (jsonParsed)

        Returns:
            The trade, or None if the transaction did not trade the pool's
            assets for its fee payer
        """
        try:
            return self._infer(tx)
        except Exception as e:
            logger.error(f"Parse error: {str(e)}")
            return None

    def _infer(self, tx: Optional[Dict[str, Any]]) -> Optional[Trade]:
        if not tx or not tx.get("meta"):
            return None
        meta = tx["meta"]
        account_keys = self._account_keys(tx)

        trader = account_key_address(account_keys[0]) if account_keys else UNKNOWN_TRADER

        token_change, base_token_change = self.token_deltas(
            trader,
            meta.get("preTokenBalances") or [],
            meta.get("postTokenBalances") or [],
        )
        if token_change == 0:
            return None

        base_change = base_token_change
        if base_change == 0:
            base_change = self.native_delta(
                trader,
                account_keys,
                meta.get("preBalances") or [],
                meta.get("postBalances") or [],
            )
        if base_change == 0:
            return None

        trade_type = classify_trade(token_change, base_change)
        if trade_type is None:
            return None

        token_amount = abs(token_change)
        native_amount = abs(base_change)
        block_time = tx.get("blockTime")
        # Without a block time the trade is stamped with the time it was seen
        timestamp = block_time * 1000 if block_time else int(self.clock() * 1000)

        return Trade(
            id=next(self._ids),
            signature=self._signature(tx),
            trade_type=trade_type,
            token_amount=token_amount,
            native_amount=native_amount,
            price=native_amount / token_amount if trade_type.is_swap else None,
            trader_address=trader,
            trader_prefix=trader[:TRADER_PREFIX_LENGTH],
            timestamp=int(timestamp),
            slot=tx.get("slot"),
        )

    def token_deltas(
        self,
        trader: str,
        pre_balances: Iterable[Dict[str, Any]],
        post_balances: Iterable[Dict[str, Any]],
    ) -> Tuple[float, float]:
        """Sum the trader-owned token balance changes for both tracked mints.

        Only accounts present in both the pre and post tables are considered.

        Returns:
            ``(token_change, base_token_change)`` in UI units
        """
        post_by_index = {post.get("accountIndex"): post for post in post_balances}
        token_change = 0.0
        base_token_change = 0.0

        for pre in pre_balances:
            post = post_by_index.get(pre.get("accountIndex"))
            if post is None:
                continue
            owner = pre.get("owner") or post.get("owner")
            if not owner or owner != trader:
                continue

            change = _ui_amount(post) - _ui_amount(pre)
            mint = pre.get("mint")
            if mint == self.token_mint:
                token_change += change
            if mint == self.base_mint:
                base_token_change += change

        return token_change, base_token_change

    def native_delta(
        self,
        trader: str,
        account_keys: List[Any],
        pre_lamports: List[Optional[int]],
        post_lamports: List[Optional[int]],
    ) -> float:
        """Change of the trader's native balance, in whole native units."""
        for index, key in enumerate(account_keys):
            if account_key_address(key) == trader:
                break
        else:
            return 0.0

        if index >= len(pre_lamports) or index >= len(post_lamports):
            return 0.0
        pre, post = pre_lamports[index], post_lamports[index]
        if pre is None or post is None:
            return 0.0
        return (post - pre) / self.lamports_per_native

    @staticmethod
    def _account_keys(tx: Dict[str, Any]) -> List[Any]:
        message = (tx.get("transaction") or {}).get("message") or {}
        return message.get("accountKeys") or []

    @staticmethod
    def _signature(tx: Dict[str, Any]) -> str:
        for signatures in (
            (tx.get("transaction") or {}).get("signatures"),
            tx.get("signatures"),
        ):
            if signatures:
                return signatures[0]
        return UNKNOWN_SIGNATURE

"""Data models for the Pool Trade Tracker.

This module defines the trade record produced by inference, the holder
statistics produced by the aggregator, and the API response bodies.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TradeType(str, Enum):
    """Direction of a reconstructed pool interaction."""

    BUY = "buy"
    SELL = "sell"
    LP_ADD = "lp_add"
    LP_REMOVE = "lp_remove"

    @property
    def is_swap(self) -> bool:
        return self in (TradeType.BUY, TradeType.SELL)


class Trade(BaseModel):
    """A single trade reconstructed from a transaction's balance deltas."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    id: int = Field(..., description="Process-lifetime sequence number")
    signature: str = Field(..., description="Transaction signature")
    trade_type: TradeType = Field(..., description="buy, sell, lp_add or lp_remove")
    token_amount: float = Field(..., gt=0, description="Magnitude of the priced token change")
    native_amount: float = Field(..., gt=0, description="Magnitude of the base asset change")
    price: Optional[float] = Field(None, description="native_amount / token_amount for swaps")
    trader_address: str = Field(..., description="Fee payer of the transaction")
    trader_prefix: str = Field(..., description="First 6 characters of the trader address")
    timestamp: int = Field(..., description="Milliseconds since epoch")
    slot: Optional[int] = Field(None, description="Slot the transaction landed in")

    def to_json_dict(self) -> Dict[str, Any]:
        """Plain dict suitable for JSON encoding."""
        return self.model_dump(mode="json")


class HolderStats(BaseModel):
    """Holder counts for one mint at a point in time."""

    model_config = ConfigDict(frozen=True)

    mint: str
    holders: int
    total_token_accounts: int
    zero_balance_accounts: int
    updated_at: int = Field(..., description="Milliseconds since epoch")


class HoldersResponse(BaseModel):
    """Body of the holder-count endpoint."""

    success: bool = True
    mint: str
    holders: int
    totalTokenAccounts: int
    zeroBalanceAccounts: int
    cached: bool
    updatedAt: int


class StatusResponse(BaseModel):
    """Body of the status endpoint."""

    status: str = "running"
    pool: str
    rpc: str
    tradesLoaded: int
    connectedClients: int
    historyLimit: int


class ErrorResponse(BaseModel):
    """Failure body shared by the API endpoints."""

    success: bool = False
    error: str


class PoolMintReport(BaseModel):
    """Mints discovered for a pool."""

    pool: str
    owner: Optional[str] = None
    data_size: int = 0
    token_accounts: List[Dict[str, Any]] = Field(default_factory=list)
    transaction_mints: Dict[str, List[str]] = Field(default_factory=dict)

    @property
    def mints(self) -> List[str]:
        """Every mint seen in token accounts or transactions, sorted."""
        seen = {account["mint"] for account in self.token_accounts}
        for mints in self.transaction_mints.values():
            seen.update(mints)
        return sorted(seen)

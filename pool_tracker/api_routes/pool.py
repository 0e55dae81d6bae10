"""API routes for pool metadata and token holder counts."""

# Standard library imports
from typing import Optional

# Third-party library imports
from fastapi import APIRouter, Depends, Query

# Internal imports
from pool_tracker.decorators import api_error_handler
from pool_tracker.dependencies import TrackerServices, get_services
from pool_tracker.logging_config import get_logger
from pool_tracker.models import HoldersResponse

# Set up logging
logger = get_logger(__name__)

# Create router
router = APIRouter(
    prefix="/api",
    tags=["pool"],
)


@router.get("/pool")
@api_error_handler
async def pool_info(services: TrackerServices = Depends(get_services)):
    """Relay the pool metadata document from the pool API unchanged.

    Returns:
        The upstream JSON body
    """
    return await services.pool_info.fetch_pool_info()


@router.get("/holders")
@api_error_handler
async def holders(
    mint: Optional[str] = Query(None, description="Token mint (defaults to the tracked token)"),
    services: TrackerServices = Depends(get_services),
):
    """Count funded token accounts for a Token-2022 mint.

    Returns:
        Holder counts and cache freshness
    """
    mint = mint or services.pool_config.token_mint
    stats = await services.holders.get_holders(mint)
    return HoldersResponse(
        mint=mint,
        holders=stats.holders,
        totalTokenAccounts=stats.total_token_accounts,
        zeroBalanceAccounts=stats.zero_balance_accounts,
        cached=services.holders.is_fresh(stats),
        updatedAt=stats.updated_at,
    )

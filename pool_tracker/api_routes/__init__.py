"""API routes package for the Pool Trade Tracker."""

# Import routers to make them available for inclusion
from pool_tracker.api_routes.trades import router as trades_router
from pool_tracker.api_routes.pool import router as pool_router

# List of available routers
__all__ = [
    "trades_router",
    "pool_router",
]

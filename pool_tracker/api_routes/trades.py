"""API routes for tracker status and the live trade stream."""

# Standard library imports
from typing import AsyncIterator

# Third-party library imports
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

# Internal imports
from pool_tracker.dependencies import TrackerServices, get_services
from pool_tracker.hub import Subscriber, TradeStreamHub, format_sse
from pool_tracker.logging_config import get_logger
from pool_tracker.models import StatusResponse

# Set up logging
logger = get_logger(__name__)

# Create router
router = APIRouter(
    prefix="/api",
    tags=["trades"],
)

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def trade_event_stream(hub: TradeStreamHub, subscriber: Subscriber) -> AsyncIterator[str]:
    """Yield a subscriber's events as SSE frames until the client goes away.

    The generator is closed (or cancelled) by the server when the client
    disconnects, which unregisters the subscriber.
    """
    try:
        async for event in subscriber.events():
            yield format_sse(event)
    finally:
        hub.unsubscribe(subscriber)


@router.get("", response_model=StatusResponse)
async def status(services: TrackerServices = Depends(get_services)):
    """Report what the tracker is watching and how much it has loaded.

    Returns:
        Status summary
    """
    return StatusResponse(
        pool=services.pool_config.pool_id,
        rpc=services.solana_config.rpc_url,
        tradesLoaded=services.hub.trade_count,
        connectedClients=services.hub.subscriber_count,
        historyLimit=services.pool_config.history_limit,
    )


@router.get("/trades-stream")
async def trades_stream(services: TrackerServices = Depends(get_services)):
    """Stream recent history followed by live trades as Server-Sent Events."""
    subscriber = services.hub.subscribe()
    return StreamingResponse(
        trade_event_stream(services.hub, subscriber),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )

"""Decorators for use throughout the pool_tracker package.

This module contains reusable decorators organized by category:
1. Resilience - Retrying rate-limited RPC calls with exponential backoff
2. Error Handling - Converting endpoint failures into API error bodies
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable, TypeVar

from starlette.responses import JSONResponse

from pool_tracker.logging_config import get_logger, log_with_context
from pool_tracker.models import ErrorResponse
from pool_tracker.solana_client import SolanaRpcError

# Type variables for better type hints
F = TypeVar('F', bound=Callable[..., Any])
T = TypeVar('T')

# Set up logger
logger = get_logger(__name__)

RATE_LIMIT_MARKERS = ("429", "Too Many Requests")

# ===============================================================
# RESILIENCE
# ===============================================================

def is_rate_limit_error(error: BaseException) -> bool:
    """Tell whether an exception signals that the RPC node is rate limiting us.

    Args:
        error: The exception raised by an RPC call

    Returns:
        True for HTTP 429 responses or messages mentioning them
    """
    if isinstance(error, SolanaRpcError) and error.status_code == 429:
        return True
    message = str(error)
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


async def with_retry(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 6,
    delay: float = 0.5,
    backoff_factor: float = 2.0,
    should_retry: Callable[[BaseException], bool] = is_rate_limit_error,
) -> T:
    """Await ``func()``, retrying retryable failures with exponential backoff.

    The wait before retry number ``attempt + 1`` is
    ``delay * backoff_factor ** attempt``. Failures rejected by
    ``should_retry``, and the failure after the last permitted retry, are
    re-raised unchanged.

    Args:
        func: Zero-argument coroutine factory
        max_retries: Maximum number of retries after the first attempt
        delay: Base delay in seconds
        backoff_factor: Multiplier applied per attempt
        should_retry: Predicate deciding whether an exception is retryable

    Returns:
        The result of the first successful attempt
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not should_retry(e) or attempt >= max_retries:
                raise
            wait_time = delay * (backoff_factor ** attempt)
            log_with_context(
                logger,
                "warning",
                f"Rate limited, retrying after {wait_time * 1000:.0f}ms delay",
                attempt=attempt + 1,
                max_retries=max_retries
            )
            await asyncio.sleep(wait_time)
            attempt += 1


def retry_on_failure(
    max_retries: int = 6,
    delay: float = 0.5,
    backoff_factor: float = 2.0,
    should_retry: Callable[[BaseException], bool] = is_rate_limit_error,
) -> Callable[[F], F]:
    """Decorator form of :func:`with_retry`.

    Args:
        max_retries: Maximum number of retry attempts
        delay: Initial delay between retries in seconds
        backoff_factor: Factor to increase delay with each retry
        should_retry: Predicate deciding whether an exception is retryable

    Returns:
        Decorator function
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            return await with_retry(
                lambda: func(*args, **kwargs),
                max_retries=max_retries,
                delay=delay,
                backoff_factor=backoff_factor,
                should_retry=should_retry,
            )

        return wrapper

    return decorator


# ===============================================================
# ERROR HANDLING
# ===============================================================

def api_error_handler(func: F) -> F:
    """Decorator turning endpoint exceptions into HTTP 500 ``{success: false, error}`` bodies.

    Args:
        func: The endpoint function to decorate

    Returns:
        The decorated function
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            log_with_context(
                logger,
                "error",
                f"Error in {func.__name__}: {str(e)}",
                error_type=type(e).__name__
            )
            return JSONResponse(
                ErrorResponse(error=str(e) or type(e).__name__).model_dump(),
                status_code=500
            )

    return wrapper

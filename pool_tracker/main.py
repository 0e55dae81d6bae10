"""Main entry point for the Pool Trade Tracker server."""

# Standard library imports
import argparse
import asyncio
import sys
from contextlib import asynccontextmanager
from typing import Optional

# Third-party library imports
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Internal imports
from pool_tracker import __version__
from pool_tracker.api_routes import pool_router, trades_router
from pool_tracker.config import get_server_config
from pool_tracker.dependencies import TrackerServices, build_services
from pool_tracker.logging_config import RequestLoggingMiddleware, configure_logging, get_logger

# Setup logging
configure_logging(get_server_config().log_level)
logger = get_logger(__name__)


async def initialize(services: TrackerServices):
    """Backfill the trade history, then start the live listener.

    The two phases never overlap: the listener only starts once the
    backfilled history has replaced the hub's buffer.
    """
    logger.info("Initializing")
    try:
        await services.backfill.run(services.pool_config.history_limit)
    except Exception as e:
        logger.error(f"History init error: {str(e)}", exc_info=True)

    try:
        await services.listener.start()
    except Exception as e:
        logger.error(f"Listener init error: {str(e)}", exc_info=True)

    logger.info("Initialization complete")


def start_pipelines(app: FastAPI) -> asyncio.Task:
    """Run :func:`initialize` in the background for an app that is serving."""
    task = asyncio.create_task(initialize(app.state.services))
    app.state.startup_task = task
    return task


def create_app(services: Optional[TrackerServices] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        services: Pre-built services; built from the environment at startup
            when omitted

    Returns:
        The application
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or build_services()
        app.state.startup_task = None
        pool_config = app.state.services.pool_config
        logger.info("Starting pool trade tracker")
        logger.info(f"Pool: {pool_config.pool_id}")
        logger.info(f"RPC: {app.state.services.solana_config.rpc_url}")
        logger.info(f"Base mint: {pool_config.base_mint}")
        logger.info(f"Token mint: {pool_config.token_mint}")
        try:
            yield
        finally:
            logger.info("Shutting down")
            task = app.state.startup_task
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            await app.state.services.close()

    app = FastAPI(
        title="Pool Trade Tracker",
        description="Live and historical trades for a single liquidity pool",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(trades_router)
    app.include_router(pool_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint.

        Returns:
            Health status
        """
        return {"status": "healthy"}

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )

    return app


app = create_app()


async def serve(server: uvicorn.Server, application: FastAPI):
    """Run ``server`` and start the pipelines once its socket is bound."""
    serve_task = asyncio.create_task(server.serve())
    while not server.started:
        if serve_task.done():
            # Bind failures end serve() before startup completes
            await serve_task
            return
        await asyncio.sleep(0.05)

    config = server.config
    logger.info(f"Server bound: {config.host}:{config.port}")
    logger.info(f"Stream: http://localhost:{config.port}/api/trades-stream")
    logger.info(f"API: http://localhost:{config.port}/api")
    start_pipelines(application)
    await serve_task


def run_server(port=None):
    """Run the server from command line.

    Args:
        port: Optional port override

    This function is used as an entry point in setup.py.
    """
    config = get_server_config()

    # Override port if specified
    if port is not None:
        try:
            config.port = int(port)
        except ValueError:
            logger.error(f"Invalid port number: {port}")
            sys.exit(1)

    logger.info(
        f"Starting Pool Trade Tracker on {config.bind_address} (Environment: {config.environment})"
    )

    server = uvicorn.Server(uvicorn.Config(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    ))
    asyncio.run(serve(server, app))


if __name__ == "__main__":
    """Run the server directly when script is executed."""
    parser = argparse.ArgumentParser(description="Pool Trade Tracker")
    parser.add_argument("--port", type=int, help="Server port")
    args = parser.parse_args()

    run_server(port=args.port)

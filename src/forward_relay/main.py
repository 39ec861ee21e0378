# src/forward_relay/main.py
"""Main entry point for the forward relay."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from forward_relay.api import relay_router, system_router
from forward_relay.core.settings import settings
from forward_relay.services.pipeline import RelayPipeline, build_pipeline
from forward_relay.services.sweeper import CleanupSweeper

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Gasless relay for signed Forward authorizations",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.include_router(system_router)
app.include_router(relay_router)


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    pipeline = build_pipeline(settings)
    sweeper = CleanupSweeper(
        pipeline.guard,
        pipeline.limiter,
        pipeline.reconciler,
        interval_seconds=settings.cleanup_interval_seconds,
    )
    await sweeper.start()
    app.state.pipeline = pipeline
    app.state.sweeper = sweeper
    logger.info("Relay started: %s", settings.public_config)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    sweeper: CleanupSweeper | None = getattr(app.state, "sweeper", None)
    if sweeper:
        await sweeper.stop()
    pipeline: RelayPipeline | None = getattr(app.state, "pipeline", None)
    if pipeline:
        await pipeline.drain(settings.shutdown_grace_seconds)
    logger.info("Relay stopped")


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "forward_relay.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=int(settings.shutdown_grace_seconds) + 1,
    )


if __name__ == "__main__":
    run()

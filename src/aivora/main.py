"""FastAPI application entry point.

Run with ``uvicorn src.aivora.main:create_app --factory``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import AppConfig, load_config
from .dependencies import include_routers
from .logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the worker pool, requeue leftovers, drain on shutdown."""
    config: AppConfig = app.state.config
    pool = app.state.worker_pool
    pool.start()
    app.state.generation_service.recover_pending_jobs()
    logger.info("app.started", extra={"workers": config.workers.worker_count})
    yield
    await pool.stop(drain_timeout=config.workers.drain_seconds)
    logger.info("app.stopped")


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="AIVORA Generation Broker", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[origin.strip() for origin in cfg.cors_origin.split(",")],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    include_routers(app, cfg)
    return app

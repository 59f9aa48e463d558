"""Liveness and readiness endpoints."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)

SERVICE_NAME = "aivora-generation-broker"


@router.get("/")
async def banner() -> dict[str, str]:
    return {"service": SERVICE_NAME, "status": "running"}


@router.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "healthy", "timestamp": datetime.utcnow().isoformat()}


@router.get("/api/health/detailed")
async def health_detailed(request: Request) -> JSONResponse:
    """Check the database and the worker pool."""
    checks: dict[str, str] = {}

    config = getattr(request.app.state, "config", None)
    if config is None:
        checks["database"] = "unconfigured"
    else:
        try:
            with config.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except SQLAlchemyError as exc:
            logger.warning("health.database.failed", extra={"error": str(exc)})
            checks["database"] = "error"

    pool = getattr(request.app.state, "worker_pool", None)
    checks["workers"] = "ok" if pool is not None and pool.accepting else "stopped"

    healthy = all(value == "ok" for value in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "degraded",
            "checks": checks,
            "timestamp": datetime.utcnow().isoformat(),
        },
    )

"""HTTP routes for generation requests and job status."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from .generation_errors import QueueFullError, ValidationError
from .generation_models import GenerationRequest, MediaMode
from .generation_schemas import (
    DirectGenerateSchema,
    GenerateRequestSchema,
    JobHandleSchema,
    JobStatusSchema,
)
from .generation_service import GenerationService

router = APIRouter(prefix="/api/generate", tags=["generation"])
logger = logging.getLogger(__name__)


def get_generation_service(request: Request) -> GenerationService:
    """Fetch generation service from application state."""
    try:
        return request.app.state.generation_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - defensive path
        raise RuntimeError("GenerationService is not configured") from exc


def _error(status_code: int, reason: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={"status": "error", "failure_reason": reason, "message": message},
    )


def _accept(service: GenerationService, request: GenerationRequest) -> JobHandleSchema:
    try:
        handle = service.submit(request)
    except ValidationError as exc:
        logger.info("generation.request.invalid", extra={"error": str(exc)})
        raise _error(status.HTTP_400_BAD_REQUEST, "invalid_request", str(exc)) from exc
    except QueueFullError as exc:
        logger.warning("generation.request.rejected", extra={"error": str(exc)})
        raise _error(status.HTTP_503_SERVICE_UNAVAILABLE, "queue_full", str(exc)) from exc
    return JobHandleSchema.from_handle(handle)


@router.post("", response_model=JobHandleSchema, status_code=status.HTTP_202_ACCEPTED)
async def generate(
    payload: GenerateRequestSchema,
    service: GenerationService = Depends(get_generation_service),
) -> JobHandleSchema:
    """Accept a generation request and return the job handle."""
    return _accept(service, payload.to_request())


@router.post("/image", response_model=JobHandleSchema, status_code=status.HTTP_202_ACCEPTED)
async def generate_image(
    payload: DirectGenerateSchema,
    service: GenerationService = Depends(get_generation_service),
) -> JobHandleSchema:
    return _accept(service, payload.to_request(MediaMode.IMAGE.value))


@router.post("/video", response_model=JobHandleSchema, status_code=status.HTTP_202_ACCEPTED)
async def generate_video(
    payload: DirectGenerateSchema,
    service: GenerationService = Depends(get_generation_service),
) -> JobHandleSchema:
    return _accept(service, payload.to_request(MediaMode.VIDEO.value))


@router.get("/status/{job_id}", response_model=JobStatusSchema)
async def job_status(
    job_id: str,
    service: GenerationService = Depends(get_generation_service),
) -> JobStatusSchema | JSONResponse:
    """Report the recorded state of a job; failed jobs are a normal answer."""
    view = service.get_status(job_id)
    if view is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "success": False,
                "status": "error",
                "failure_reason": "job_not_found",
                "jobId": job_id,
            },
        )
    return JobStatusSchema.from_view(view)

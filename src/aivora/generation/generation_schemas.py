"""Pydantic schemas for the generation HTTP surface."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .generation_models import ArtifactRecord, GenerationRequest, JobHandle, JobStatusView


class GenerateRequestSchema(BaseModel):
    """Body of ``POST /api/generate``.

    Fields stay loosely typed so that bad values reach the service validator
    and come back as a 400 with a readable message.
    """

    model_config = ConfigDict(populate_by_name=True)

    mode: str | None = None
    platform: str | None = None
    source_url: str | None = Field(default=None, alias="sourceUrl")
    shot_type: str | None = Field(default=None, alias="shotType")
    settings: Any = None
    persona: str | None = None
    timestamp: str | int | None = None

    def to_request(self) -> GenerationRequest:
        return GenerationRequest(
            mode=self.mode,
            platform=self.platform,
            source_url=self.source_url,
            shot_type=self.shot_type,
            settings=self.settings if self.settings is not None else {},
            persona=self.persona,
        )


class DirectGenerateSchema(BaseModel):
    """Body of the direct ``/api/generate/image|video`` variants."""

    model_config = ConfigDict(populate_by_name=True)

    source_url: str | None = Field(default=None, alias="sourceUrl")
    shot_type: str | None = Field(default=None, alias="shotType")
    settings: Any = None
    persona: str | None = None

    def to_request(self, mode: str) -> GenerationRequest:
        return GenerationRequest(
            mode=mode,
            platform="generic",
            source_url=self.source_url,
            shot_type=self.shot_type,
            settings=self.settings if self.settings is not None else {},
            persona=self.persona,
        )


class JobHandleSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    job_id: str = Field(alias="jobId")
    status: str
    provider: str
    message: str
    estimated_time: str = Field(alias="estimatedTime")

    @classmethod
    def from_handle(cls, handle: JobHandle) -> "JobHandleSchema":
        return cls(
            job_id=handle.job_id,
            status=handle.status.value,
            provider=handle.provider,
            message=handle.message,
            estimated_time=handle.estimated_time,
        )


class ArtifactSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    url: str
    media_type: str = Field(alias="mediaType")
    model_used: str = Field(alias="modelUsed")
    aspect_ratio: str | None = Field(default=None, alias="aspectRatio")
    resolution: str | None = None
    quality_tier: str | None = Field(default=None, alias="qualityTier")
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_record(cls, record: ArtifactRecord) -> "ArtifactSchema":
        return cls(
            id=record.id,
            url=record.url,
            media_type=record.content_type.value,
            model_used=record.model_used,
            aspect_ratio=record.aspect_ratio,
            resolution=record.resolution,
            quality_tier=record.quality_tier.value if record.quality_tier else None,
            created_at=record.created_at,
        )


class JobStatusSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    job_id: str = Field(alias="jobId")
    status: str
    mode: str
    persona: str
    provider: str | None = None
    error_message: str | None = Field(default=None, alias="errorMessage")
    media_generation_id: str | None = Field(default=None, alias="mediaGenerationId")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    result: ArtifactSchema | None = None

    @classmethod
    def from_view(cls, view: JobStatusView) -> "JobStatusSchema":
        job = view.job
        return cls(
            job_id=job.job_id,
            status=job.status.value,
            mode=job.mode.value,
            persona=job.persona,
            provider=job.provider,
            error_message=job.error_message,
            media_generation_id=job.media_generation_id,
            created_at=job.created_at,
            updated_at=job.updated_at,
            result=ArtifactSchema.from_record(view.artifact) if view.artifact else None,
        )

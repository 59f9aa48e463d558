"""Data structures for the generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any


class JobStatus(StrEnum):
    """Lifecycle statuses for generation_jobs records."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class MediaMode(StrEnum):
    IMAGE = "image"
    VIDEO = "video"


class Platform(StrEnum):
    PINTEREST = "pinterest"
    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    GENERIC = "generic"


class ShotType(StrEnum):
    CLOSE = "close"
    HALF = "half"
    FULL = "full"


class QualityTier(StrEnum):
    """Distribution tier assigned to artifacts downstream."""

    S = "S-Tier"
    A = "A-Tier"
    B = "B-Tier"


ESTIMATED_TIME: dict[MediaMode, str] = {
    MediaMode.IMAGE: "30-60 seconds",
    MediaMode.VIDEO: "2-5 minutes",
}


@dataclass(slots=True)
class GenerationRequest:
    """Raw caller input before validation."""

    mode: str | None
    platform: str | None
    source_url: str | None
    shot_type: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)
    persona: str | None = None


@dataclass(slots=True)
class ValidatedRequest:
    """Request after validation and normalisation."""

    mode: MediaMode
    platform: Platform
    source_url: str
    shot_type: str | None
    settings: dict[str, Any]
    persona: str


@dataclass(slots=True)
class JobHandle:
    """Synchronous answer to a generation request."""

    job_id: str
    status: JobStatus
    provider: str
    message: str
    estimated_time: str


@dataclass(slots=True)
class JobRecord:
    """Snapshot of a generation_jobs row."""

    job_id: str
    persona: str
    mode: MediaMode
    platform: str
    source_url: str
    shot_type: str | None
    settings: dict[str, Any]
    status: JobStatus
    provider: str | None
    error_message: str | None
    created_at: datetime
    updated_at: datetime
    media_generation_id: str | None


@dataclass(slots=True)
class ArtifactRecord:
    """Snapshot of a media_generations row."""

    id: str
    job_id: str
    persona: str
    content_type: MediaMode
    url: str
    storage_path: str | None
    model_used: str
    prompt: str | None
    settings: dict[str, Any]
    quality_tier: QualityTier | None
    status: str
    shot_type: str | None
    nsfw_level: int
    aspect_ratio: str | None
    resolution: str | None
    metadata: dict[str, Any]
    created_at: datetime


@dataclass(slots=True)
class JobStatusView:
    """What the status endpoint reports for a job."""

    job: JobRecord
    artifact: ArtifactRecord | None = None

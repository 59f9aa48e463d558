"""Persistence layer for media_generations (artifact) records."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.db_models import MediaGenerationModel
from ..generation.generation_models import ArtifactRecord, MediaMode, QualityTier


class MediaGenerationRepository:
    """Store produced media; at most one row per job."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def create(
        self,
        *,
        job_id: str,
        persona: str,
        content_type: MediaMode,
        url: str,
        storage_path: str | None,
        model_used: str,
        prompt: str | None,
        settings: dict[str, Any],
        shot_type: str | None,
        nsfw_level: int,
        aspect_ratio: str | None,
        resolution: str | None,
        metadata: dict[str, Any],
        quality_tier: QualityTier | None = None,
    ) -> ArtifactRecord:
        model = MediaGenerationModel(
            id=uuid.uuid4().hex,
            job_id=job_id,
            persona=persona,
            content_type=content_type.value,
            url=url,
            storage_path=storage_path,
            model_used=model_used,
            prompt=prompt,
            settings=settings,
            quality_tier=quality_tier.value if quality_tier else None,
            status="completed",
            shot_type=shot_type,
            nsfw_level=nsfw_level,
            aspect_ratio=aspect_ratio,
            resolution=resolution,
            metadata_json=metadata,
            created_at=self._clock(),
        )
        with self._session_factory() as session:
            session.add(model)
            session.commit()
            return self._to_record(model)

    def get_by_job(self, job_id: str) -> ArtifactRecord | None:
        with self._session_factory() as session:
            model = session.scalars(
                select(MediaGenerationModel).where(MediaGenerationModel.job_id == job_id)
            ).first()
            return self._to_record(model) if model is not None else None

    @staticmethod
    def _to_record(model: MediaGenerationModel) -> ArtifactRecord:
        return ArtifactRecord(
            id=model.id,
            job_id=model.job_id,
            persona=model.persona,
            content_type=MediaMode(model.content_type),
            url=model.url,
            storage_path=model.storage_path,
            model_used=model.model_used,
            prompt=model.prompt,
            settings=dict(model.settings or {}),
            quality_tier=QualityTier(model.quality_tier) if model.quality_tier else None,
            status=model.status,
            shot_type=model.shot_type,
            nsfw_level=model.nsfw_level,
            aspect_ratio=model.aspect_ratio,
            resolution=model.resolution,
            metadata=dict(model.metadata_json or {}),
            created_at=model.created_at,
        )

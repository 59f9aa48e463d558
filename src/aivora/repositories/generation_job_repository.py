"""Persistence layer for generation jobs."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..db.db_models import GenerationJobModel
from ..generation.generation_models import JobRecord, JobStatus, MediaMode


class GenerationJobRepository:
    """Manage generation_jobs records.

    Status changes are conditional updates keyed on the current status, so a
    job only ever moves forward through ``pending -> processing ->
    completed|failed``. Each transition method reports whether the row
    actually moved.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def create_pending(
        self,
        *,
        job_id: str,
        persona: str,
        mode: MediaMode,
        platform: str,
        source_url: str,
        shot_type: str | None,
        settings: dict[str, Any],
        provider: str | None = None,
    ) -> JobRecord:
        now = self._clock()
        model = GenerationJobModel(
            id=job_id,
            persona=persona,
            mode=mode.value,
            platform=platform,
            source_url=source_url,
            shot_type=shot_type,
            settings=settings,
            provider=provider,
            status=JobStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        with self._session_factory() as session:
            session.add(model)
            session.commit()
            return self._to_record(model)

    def mark_processing(self, job_id: str) -> bool:
        """Claim a pending job for a worker."""
        return self._transition(job_id, (JobStatus.PENDING,), JobStatus.PROCESSING)

    def mark_completed(self, job_id: str, *, media_generation_id: str) -> bool:
        return self._transition(
            job_id,
            (JobStatus.PROCESSING,),
            JobStatus.COMPLETED,
            media_generation_id=media_generation_id,
            error_message=None,
        )

    def mark_failed(self, job_id: str, *, error_message: str) -> bool:
        return self._transition(
            job_id,
            (JobStatus.PROCESSING,),
            JobStatus.FAILED,
            error_message=error_message,
        )

    def get_job(self, job_id: str) -> JobRecord:
        with self._session_factory() as session:
            model = session.get(GenerationJobModel, job_id)
            if model is None:
                raise KeyError(f"Job '{job_id}' not found")
            return self._to_record(model)

    def find_job(self, job_id: str) -> JobRecord | None:
        try:
            return self.get_job(job_id)
        except KeyError:
            return None

    def list_by_status(self, status: JobStatus, *, limit: int = 500) -> list[JobRecord]:
        with self._session_factory() as session:
            rows = session.scalars(
                select(GenerationJobModel)
                .where(GenerationJobModel.status == status.value)
                .order_by(GenerationJobModel.created_at)
                .limit(limit)
            ).all()
            return [self._to_record(row) for row in rows]

    def _transition(
        self,
        job_id: str,
        allowed_from: Iterable[JobStatus],
        target: JobStatus,
        **values: Any,
    ) -> bool:
        with self._session_factory() as session:
            result = session.execute(
                update(GenerationJobModel)
                .where(
                    GenerationJobModel.id == job_id,
                    GenerationJobModel.status.in_([status.value for status in allowed_from]),
                )
                .values(status=target.value, updated_at=self._clock(), **values)
            )
            session.commit()
            return result.rowcount == 1

    @staticmethod
    def _to_record(model: GenerationJobModel) -> JobRecord:
        return JobRecord(
            job_id=model.id,
            persona=model.persona,
            mode=MediaMode(model.mode),
            platform=model.platform,
            source_url=model.source_url,
            shot_type=model.shot_type,
            settings=dict(model.settings or {}),
            status=JobStatus(model.status),
            provider=model.provider,
            error_message=model.error_message,
            created_at=model.created_at,
            updated_at=model.updated_at,
            media_generation_id=model.media_generation_id,
        )

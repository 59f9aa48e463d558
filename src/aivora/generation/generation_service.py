"""Job orchestration for image and video generation."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

from ..media.blob_store import BlobStore
from ..media.playable_url import PlayableUrlResolver
from ..providers.poller import Completed, Failed, await_completion
from ..providers.providers_base import AdapterRequest, Immediate, ProviderAdapter, ProviderEndpoint
from ..providers.providers_factory import select_provider
from ..references.reference_resolver import ReferenceResolver
from ..repositories.generation_job_repository import GenerationJobRepository
from ..repositories.media_generation_repository import MediaGenerationRepository
from .generation_errors import (
    GenerationError,
    PersistenceError,
    PollTimeoutError,
    ProviderTaskFailedError,
    QueueFullError,
    ReferenceResolutionError,
)
from .generation_models import (
    ESTIMATED_TIME,
    ArtifactRecord,
    GenerationRequest,
    JobHandle,
    JobRecord,
    JobStatus,
    JobStatusView,
    MediaMode,
    ShotType,
)
from .validation import is_nsfw_enabled, validate_request

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..workers.job_worker_pool import JobWorkerPool

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_SHOT: dict[MediaMode, str] = {
    MediaMode.IMAGE: ShotType.CLOSE.value,
    MediaMode.VIDEO: ShotType.FULL.value,
}

OUTPUT_FORMATS: dict[MediaMode, tuple[str, str, str]] = {
    MediaMode.IMAGE: ("images", "png", "image/png"),
    MediaMode.VIDEO: ("videos", "mp4", "video/mp4"),
}


def build_storage_path(persona: str, mode: MediaMode, when: datetime) -> str:
    folder, extension, _ = OUTPUT_FORMATS[mode]
    stamp = when.strftime("%Y%m%d%H%M%S%f")
    return f"{persona}/{folder}/{persona}_{mode.value}_{stamp}.{extension}"


@dataclass(slots=True)
class GeneratedMedia:
    """Provider output that still has to be made durable."""

    artifact_url: str
    provider_id: str
    model_used: str
    prompt: str
    aspect_ratio: str | None
    resolution: str | None


@dataclass(slots=True)
class GenerationService:
    """Accepts generation requests and drives each job to a terminal state."""

    job_repo: GenerationJobRepository
    media_repo: MediaGenerationRepository
    reference_resolver: ReferenceResolver
    blob_store: BlobStore
    url_resolver: PlayableUrlResolver
    providers: Mapping[str, ProviderEndpoint]
    adapter_factory: Callable[[str], ProviderAdapter]
    default_persona: str = "arisa"
    stage_source_media: bool = True
    persist_retry_attempts: int = 3
    persist_retry_delay_seconds: float = 2.0
    worker_pool: "JobWorkerPool | None" = None
    id_factory: Callable[[], str] = field(default_factory=lambda: lambda: uuid.uuid4().hex)
    clock: Callable[[], datetime] = datetime.utcnow
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    log: logging.Logger = field(default_factory=lambda: logger)

    def submit(self, request: GenerationRequest) -> JobHandle:
        """Validate, record the job as pending and queue it for a worker."""
        validated = validate_request(request, default_persona=self.default_persona)
        provider_id = select_provider(
            validated.mode,
            is_nsfw_enabled(validated.settings),
            validated.settings.get("videoModel"),
        )

        pool = self.worker_pool
        if pool is None:
            raise QueueFullError("Worker pool is not running")
        pool.ensure_capacity()

        job = self.job_repo.create_pending(
            job_id=self.id_factory(),
            persona=validated.persona,
            mode=validated.mode,
            platform=validated.platform.value,
            source_url=validated.source_url,
            shot_type=validated.shot_type,
            settings=validated.settings,
            provider=provider_id,
        )
        pool.submit(job.job_id)

        self.log.info(
            "generation.job.created",
            extra={
                "job_id": job.job_id,
                "persona": job.persona,
                "mode": job.mode.value,
                "platform": job.platform,
                "provider": provider_id,
            },
        )
        endpoint = self.providers.get(provider_id)
        return JobHandle(
            job_id=job.job_id,
            status=JobStatus.PENDING,
            provider=endpoint.display_name if endpoint else provider_id,
            message=f"{validated.mode.value.capitalize()} generation started",
            estimated_time=ESTIMATED_TIME[validated.mode],
        )

    def get_status(self, job_id: str) -> JobStatusView | None:
        job = self.job_repo.find_job(job_id)
        if job is None:
            return None
        artifact = None
        if job.status is JobStatus.COMPLETED:
            artifact = self.media_repo.get_by_job(job_id)
        return JobStatusView(job=job, artifact=artifact)

    def recover_pending_jobs(self) -> int:
        """Queue jobs a previous process accepted but never started."""
        pool = self.worker_pool
        requeued = 0
        if pool is not None:
            for job in self.job_repo.list_by_status(JobStatus.PENDING):
                try:
                    pool.submit(job.job_id)
                except QueueFullError:
                    self.log.warning(
                        "generation.recovery.queue_full",
                        extra={"requeued": requeued, "job_id": job.job_id},
                    )
                    break
                requeued += 1

        stuck = self.job_repo.list_by_status(JobStatus.PROCESSING)
        if stuck:
            self.log.warning(
                "generation.recovery.stuck_processing",
                extra={"job_ids": [job.job_id for job in stuck]},
            )
        self.log.info("generation.recovery.done", extra={"requeued": requeued})
        return requeued

    async def run_job(self, job_id: str) -> None:
        """Worker body: failures end as ``failed`` unless an artifact row already exists."""
        if not self.job_repo.mark_processing(job_id):
            self.log.warning("generation.job.claim_skipped", extra={"job_id": job_id})
            return
        try:
            job = self.job_repo.get_job(job_id)
            self.log.info(
                "generation.job.processing",
                extra={"job_id": job_id, "provider": job.provider, "mode": job.mode.value},
            )
            generated = await self._generate(job)
        except GenerationError as exc:
            self._fail(job_id, str(exc), error_type=type(exc).__name__)
            return
        except Exception as exc:  # noqa: BLE001
            self.log.exception("generation.job.unexpected_error", extra={"job_id": job_id})
            self._fail(job_id, str(exc) or type(exc).__name__, error_type=type(exc).__name__)
            return

        try:
            artifact = await self._persist_artifact(job, generated)
        except PersistenceError as exc:
            if self._artifact_recorded(job_id):
                # Artifact row exists but the job could not be completed: stays processing.
                self.log.error(
                    "generation.artifact.unlinked",
                    extra={"job_id": job_id, "artifact_url": exc.artifact_url, "error": str(exc)},
                )
                return
            self.log.error(
                "generation.artifact.orphaned",
                extra={"job_id": job_id, "artifact_url": exc.artifact_url, "error": str(exc)},
            )
            self._fail(job_id, str(exc), error_type=type(exc).__name__)
            return

        self.log.info(
            "generation.job.completed",
            extra={"job_id": job_id, "media_generation_id": artifact.id, "url": artifact.url},
        )

    async def _generate(self, job: JobRecord) -> GeneratedMedia:
        settings = job.settings
        provider_id = job.provider or select_provider(
            job.mode, is_nsfw_enabled(settings), settings.get("videoModel")
        )
        adapter = self.adapter_factory(provider_id)

        lookup_shot = job.shot_type or DEFAULT_LOOKUP_SHOT[job.mode]
        references = self.reference_resolver.resolve(job.persona, lookup_shot)
        if not references.face:
            raise ReferenceResolutionError(
                f"No face reference images found for persona '{job.persona}'"
            )
        profile = self.reference_resolver.get_profile(job.persona)

        source_url = job.source_url
        if job.mode is MediaMode.VIDEO:
            source_url = await self.url_resolver.resolve(
                source_url, page_url=settings.get("pageUrl")
            )
        if self.stage_source_media and not self.blob_store.is_durable(source_url):
            source_url = await self._stage_source(job, source_url)

        prompt = settings.get("prompt") or adapter.build_prompt(profile)
        request = AdapterRequest(
            source_url=source_url,
            references=references.all(),
            prompt=prompt,
            settings=settings,
        )

        result = await adapter.submit(request)
        if isinstance(result, Immediate):
            artifact_url = result.artifact_url
        else:
            self.log.info(
                "generation.job.polling",
                extra={
                    "job_id": job.job_id,
                    "task_handle": result.task_handle,
                    "interval_ms": result.poll_interval_ms,
                    "max_attempts": adapter.max_attempts,
                },
            )
            outcome = await await_completion(
                result.task_handle,
                adapter.check_status,
                interval_ms=result.poll_interval_ms,
                max_attempts=adapter.max_attempts,
                sleep=self.sleep,
            )
            if isinstance(outcome, Failed):
                raise ProviderTaskFailedError(outcome.reason)
            if not isinstance(outcome, Completed):
                raise PollTimeoutError(
                    f"Provider task {result.task_handle} did not finish "
                    f"after {outcome.attempts} attempts"
                )
            artifact_url = outcome.artifact_url

        return GeneratedMedia(
            artifact_url=artifact_url,
            provider_id=provider_id,
            model_used=adapter.endpoint.model,
            prompt=prompt,
            aspect_ratio=settings.get("aspectRatio") or adapter.default_aspect_ratio,
            resolution=settings.get("resolution") or adapter.default_resolution,
        )

    async def _stage_source(self, job: JobRecord, url: str) -> str:
        data = await self.blob_store.get(url)
        suffix = PurePosixPath(urlparse(url).path).suffix.lower()
        if not suffix:
            suffix = ".png" if job.mode is MediaMode.IMAGE else ".mp4"
        content_type = mimetypes.guess_type(f"source{suffix}")[0] or "application/octet-stream"
        staged = await self.blob_store.put(
            data, f"temp/{job.job_id}{suffix}", content_type=content_type
        )
        self.log.info("generation.source.staged", extra={"job_id": job.job_id, "url": staged})
        return staged

    async def _persist_artifact(self, job: JobRecord, generated: GeneratedMedia) -> ArtifactRecord:
        attempts = max(self.persist_retry_attempts, 1)
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                return await self._persist_once(job, generated)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                self.log.warning(
                    "generation.persist.retry",
                    extra={
                        "job_id": job.job_id,
                        "attempt": attempt,
                        "max_attempts": attempts,
                        "error": str(exc),
                    },
                )
                if attempt < attempts:
                    await self.sleep(self.persist_retry_delay_seconds)
        raise PersistenceError(
            f"Failed to persist artifact: {last_error}",
            artifact_url=generated.artifact_url,
        ) from last_error

    async def _persist_once(self, job: JobRecord, generated: GeneratedMedia) -> ArtifactRecord:
        artifact = self.media_repo.get_by_job(job.job_id)
        if artifact is None:
            if self.blob_store.is_durable(generated.artifact_url):
                url, storage_path = generated.artifact_url, None
            else:
                data = await self.blob_store.get(generated.artifact_url)
                storage_path = build_storage_path(job.persona, job.mode, self.clock())
                url = await self.blob_store.put(
                    data, storage_path, content_type=OUTPUT_FORMATS[job.mode][2]
                )
            artifact = self.media_repo.create(
                job_id=job.job_id,
                persona=job.persona,
                content_type=job.mode,
                url=url,
                storage_path=storage_path,
                model_used=generated.model_used,
                prompt=generated.prompt,
                settings=job.settings,
                shot_type=job.shot_type,
                nsfw_level=1 if is_nsfw_enabled(job.settings) else 0,
                aspect_ratio=generated.aspect_ratio,
                resolution=generated.resolution,
                metadata=self._artifact_metadata(job, generated),
            )

        if not self.job_repo.mark_completed(job.job_id, media_generation_id=artifact.id):
            self.log.warning(
                "generation.job.complete_skipped",
                extra={"job_id": job.job_id, "media_generation_id": artifact.id},
            )
        return artifact

    def _artifact_recorded(self, job_id: str) -> bool:
        """Whether an artifact row exists; an unreadable store counts as yes."""
        try:
            return self.media_repo.get_by_job(job_id) is not None
        except Exception:  # noqa: BLE001
            self.log.exception("generation.artifact.lookup_failed", extra={"job_id": job_id})
            return True

    @staticmethod
    def _artifact_metadata(job: JobRecord, generated: GeneratedMedia) -> dict[str, Any]:
        return {
            "source": "api",
            "platform": job.platform,
            "source_url": job.source_url,
            "job_id": job.job_id,
            "provider": generated.provider_id,
            "provider_url": generated.artifact_url,
        }

    def _fail(self, job_id: str, message: str, *, error_type: str) -> None:
        self.log.error(
            "generation.job.failed",
            extra={"job_id": job_id, "error_type": error_type, "error_message": message},
        )
        if not self.job_repo.mark_failed(job_id, error_message=message):
            self.log.warning("generation.job.fail_skipped", extra={"job_id": job_id})

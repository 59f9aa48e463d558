from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from src.aivora.config import EnvSettings, build_provider_table
from src.aivora.db.db_models import InfluencerReferenceModel
from src.aivora.generation.generation_errors import (
    AdapterError,
    QueueFullError,
    ValidationError,
)
from src.aivora.generation.generation_models import GenerationRequest, JobStatus, MediaMode
from src.aivora.generation.generation_service import GenerationService, build_storage_path
from src.aivora.media.blob_store import BlobStoreError
from src.aivora.providers.providers_base import (
    AdapterRequest,
    Immediate,
    Pending,
    PollStatus,
    ProviderAdapter,
)
from src.aivora.references.reference_resolver import ReferenceResolver
from src.aivora.repositories.generation_job_repository import GenerationJobRepository
from src.aivora.repositories.media_generation_repository import MediaGenerationRepository
from src.aivora.repositories.reference_repository import ReferenceRepository

PROVIDERS = build_provider_table(EnvSettings(wavespeed_base_url="https://ws.test"))
MEDIA_BASE = "https://media.aivora.test"


class FakeAdapter(ProviderAdapter):
    default_aspect_ratio = "3:4"
    default_resolution = "2K"

    def __init__(
        self,
        provider_id: str,
        *,
        submit_result: Immediate | Pending | Exception,
        statuses: list[PollStatus] | None = None,
    ) -> None:
        self.endpoint = PROVIDERS[provider_id]
        self.submit_result = submit_result
        self.statuses = list(statuses or [])
        self.requests: list[AdapterRequest] = []
        self.status_calls = 0

    async def submit(self, request: AdapterRequest):
        self.requests.append(request)
        if isinstance(self.submit_result, Exception):
            raise self.submit_result
        return self.submit_result

    async def check_status(self, task_handle: str) -> PollStatus:
        self.status_calls += 1
        return self.statuses.pop(0)

    def build_prompt(self, profile) -> str:
        return "generated prompt"


class FakeBlobStore:
    def __init__(self, *, get_failures: int = 0) -> None:
        self.objects: dict[str, bytes] = {}
        self.get_calls: list[str] = []
        self.get_failures = get_failures

    async def put(self, data: bytes, path: str, *, content_type: str) -> str:
        self.objects[path] = data
        return f"{MEDIA_BASE}/{path}"

    async def get(self, url: str) -> bytes:
        self.get_calls.append(url)
        if self.get_failures > 0:
            self.get_failures -= 1
            raise BlobStoreError("Failed to download file: HTTP 502")
        return b"media-bytes"

    def is_durable(self, url: str) -> bool:
        return url.startswith(MEDIA_BASE + "/")


class FakeUrlResolver:
    def __init__(self) -> None:
        self.calls: list[tuple[str, str | None]] = []

    async def resolve(self, url: str, *, page_url: str | None = None) -> str:
        self.calls.append((url, page_url))
        return "https://v16.tiktokcdn.com/resolved.mp4"


class FakePool:
    def __init__(self, *, full: bool = False) -> None:
        self.full = full
        self.submitted: list[str] = []

    def ensure_capacity(self) -> None:
        if self.full:
            raise QueueFullError("Generation queue is full, try again later")

    def submit(self, job_id: str) -> None:
        self.ensure_capacity()
        self.submitted.append(job_id)


async def no_sleep(_: float) -> None:
    return None


def add_face(session_factory, persona: str = "arisa") -> None:
    with session_factory() as session:
        session.add(
            InfluencerReferenceModel(
                id=uuid.uuid4().hex,
                persona=persona,
                category="face",
                shot_type="close",
                image_url="https://refs/face.png",
            )
        )
        session.commit()


@pytest.fixture
def build_service(session_factory):
    def _build(
        adapter: FakeAdapter | None = None,
        *,
        blob_store: FakeBlobStore | None = None,
        pool: FakePool | None = None,
        with_references: bool = True,
        **overrides: Any,
    ) -> GenerationService:
        if with_references:
            add_face(session_factory)
        ids = iter(f"job-{index}" for index in range(1, 100))
        adapters = {}
        if adapter is not None:
            adapters[adapter.provider_id] = adapter

        service = GenerationService(
            job_repo=GenerationJobRepository(session_factory),
            media_repo=MediaGenerationRepository(session_factory),
            reference_resolver=ReferenceResolver(repo=ReferenceRepository(session_factory)),
            blob_store=blob_store or FakeBlobStore(),
            url_resolver=overrides.pop("url_resolver", FakeUrlResolver()),
            providers=PROVIDERS,
            adapter_factory=lambda provider_id: adapters[provider_id],
            worker_pool=pool or FakePool(),
            id_factory=lambda: next(ids),
            clock=lambda: datetime(2026, 10, 19, 8, 30, 15, 123456),
            sleep=no_sleep,
            persist_retry_delay_seconds=0,
            **overrides,
        )
        return service

    return _build


def image_request(**settings: Any) -> GenerationRequest:
    return GenerationRequest(
        mode="image",
        platform="pinterest",
        source_url="https://x/img.png",
        settings=settings,
    )


def test_submit_returns_pending_handle_without_network(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    pool = FakePool()
    service = build_service(adapter, pool=pool)

    handle = service.submit(image_request())

    assert handle.job_id == "job-1"
    assert handle.status is JobStatus.PENDING
    assert handle.provider == "Gemini 2.5 Flash Image Edit"
    assert handle.estimated_time == "30-60 seconds"
    assert pool.submitted == ["job-1"]
    assert adapter.requests == []
    job = service.job_repo.get_job("job-1")
    assert job.status is JobStatus.PENDING
    assert job.provider == "gemini-edit"


def test_submit_picks_seedream_for_nsfw(build_service):
    service = build_service()

    handle = service.submit(image_request(enableNSFW=True))

    assert service.job_repo.get_job(handle.job_id).provider == "seedream-edit"


def test_unsupported_mode_creates_no_job(build_service):
    service = build_service()

    with pytest.raises(ValidationError):
        service.submit(GenerationRequest(mode="audio", platform="pinterest", source_url="u"))

    assert service.job_repo.list_by_status(JobStatus.PENDING) == []


def test_full_queue_rejects_before_creating_job(build_service):
    service = build_service(pool=FakePool(full=True))

    with pytest.raises(QueueFullError):
        service.submit(image_request())

    assert service.job_repo.find_job("job-1") is None


@pytest.mark.asyncio
async def test_adapter_error_marks_job_failed(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=AdapterError("503: upstream down"))
    service = build_service(adapter)
    handle = service.submit(image_request())

    await service.run_job(handle.job_id)

    view = service.get_status(handle.job_id)
    assert view.job.status is JobStatus.FAILED
    assert "503" in view.job.error_message
    assert view.artifact is None


@pytest.mark.asyncio
async def test_pending_then_success_completes_with_artifact(build_service):
    adapter = FakeAdapter(
        "gemini-edit",
        submit_result=Pending(task_handle="pred-1", poll_interval_ms=3000),
        statuses=[PollStatus.pending(), PollStatus.pending(), PollStatus.done("https://cdn/X.png")],
    )
    blob_store = FakeBlobStore()
    service = build_service(adapter, blob_store=blob_store, stage_source_media=False)
    handle = service.submit(image_request(aspectRatio="1:1"))

    await service.run_job(handle.job_id)

    view = service.get_status(handle.job_id)
    assert view.job.status is JobStatus.COMPLETED
    assert adapter.status_calls == 3
    assert blob_store.get_calls == ["https://cdn/X.png"]
    expected_path = "arisa/images/arisa_image_20261019083015123456.png"
    assert view.artifact.url == f"{MEDIA_BASE}/{expected_path}"
    assert view.artifact.storage_path == expected_path
    assert view.job.media_generation_id == view.artifact.id
    assert view.artifact.model_used == "gemini-2.5-flash-image-preview-edit"
    assert view.artifact.aspect_ratio == "1:1"
    assert view.artifact.resolution == "2K"
    assert view.artifact.metadata["provider_url"] == "https://cdn/X.png"
    assert view.artifact.metadata["platform"] == "pinterest"
    assert adapter.requests[0].source_url == "https://x/img.png"
    assert adapter.requests[0].prompt == "generated prompt"


@pytest.mark.asyncio
async def test_poll_failure_and_timeout_fail_the_job(build_service):
    failing = FakeAdapter(
        "gemini-edit",
        submit_result=Pending(task_handle="p", poll_interval_ms=0),
        statuses=[PollStatus.failed("content policy")],
    )
    service = build_service(failing)
    first = service.submit(image_request())
    await service.run_job(first.job_id)

    timing_out = FakeAdapter(
        "gemini-edit",
        submit_result=Pending(task_handle="slow", poll_interval_ms=0),
        statuses=[PollStatus.pending()] * PROVIDERS["gemini-edit"].max_attempts,
    )
    service.adapter_factory = lambda provider_id: timing_out
    second = service.submit(image_request())
    await service.run_job(second.job_id)

    assert service.get_status(first.job_id).job.error_message == "content policy"
    timed_out = service.get_status(second.job_id).job
    assert timed_out.status is JobStatus.FAILED
    assert "did not finish after 30 attempts" in timed_out.error_message


@pytest.mark.asyncio
async def test_missing_face_reference_fails_job(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    service = build_service(adapter, with_references=False)
    handle = service.submit(image_request())

    await service.run_job(handle.job_id)

    job = service.get_status(handle.job_id).job
    assert job.status is JobStatus.FAILED
    assert "No face reference images" in job.error_message
    assert adapter.requests == []


@pytest.mark.asyncio
async def test_persistence_is_retried(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    blob_store = FakeBlobStore(get_failures=1)
    service = build_service(adapter, blob_store=blob_store, stage_source_media=False)
    handle = service.submit(image_request())

    await service.run_job(handle.job_id)

    assert service.get_status(handle.job_id).job.status is JobStatus.COMPLETED
    assert len(blob_store.get_calls) == 2


@pytest.mark.asyncio
async def test_persistence_exhaustion_fails_without_artifact(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    blob_store = FakeBlobStore(get_failures=10)
    service = build_service(
        adapter, blob_store=blob_store, stage_source_media=False, persist_retry_attempts=3
    )
    handle = service.submit(image_request())

    await service.run_job(handle.job_id)

    view = service.get_status(handle.job_id)
    assert view.job.status is JobStatus.FAILED
    assert "Failed to persist artifact" in view.job.error_message
    assert service.media_repo.get_by_job(handle.job_id) is None
    assert len(blob_store.get_calls) == 3


@pytest.mark.asyncio
async def test_durable_result_is_not_copied(build_service):
    durable = f"{MEDIA_BASE}/already/there.png"
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate(durable))
    blob_store = FakeBlobStore()
    service = build_service(adapter, blob_store=blob_store, stage_source_media=False)
    handle = service.submit(image_request())

    await service.run_job(handle.job_id)

    view = service.get_status(handle.job_id)
    assert view.artifact.url == durable
    assert view.artifact.storage_path is None
    assert blob_store.objects == {}


@pytest.mark.asyncio
async def test_video_source_is_resolved_and_staged(build_service):
    adapter = FakeAdapter("wan-animate", submit_result=Immediate("https://cdn/out.mp4"))
    blob_store = FakeBlobStore()
    resolver = FakeUrlResolver()
    service = build_service(adapter, blob_store=blob_store, url_resolver=resolver)
    handle = service.submit(
        GenerationRequest(
            mode="video",
            platform="tiktok",
            source_url="https://www.tiktok.com/@a/video/1",
            settings={"prompt": "custom prompt"},
        )
    )

    await service.run_job(handle.job_id)

    view = service.get_status(handle.job_id)
    assert handle.estimated_time == "2-5 minutes"
    assert resolver.calls == [("https://www.tiktok.com/@a/video/1", None)]
    assert adapter.requests[0].source_url == f"{MEDIA_BASE}/temp/{handle.job_id}.mp4"
    assert adapter.requests[0].prompt == "custom prompt"
    assert view.artifact.storage_path.startswith("arisa/videos/arisa_video_")
    assert view.artifact.storage_path.endswith(".mp4")
    assert view.artifact.aspect_ratio == "3:4"


@pytest.mark.asyncio
async def test_second_worker_cannot_claim_same_job(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    service = build_service(adapter, stage_source_media=False)
    handle = service.submit(image_request())

    await service.run_job(handle.job_id)
    await service.run_job(handle.job_id)

    assert len(adapter.requests) == 1


@pytest.mark.asyncio
async def test_artifact_exists_iff_job_completed(build_service):
    ok = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    service = build_service(ok, stage_source_media=False)
    completed = service.submit(image_request())
    await service.run_job(completed.job_id)
    failed_adapter = FakeAdapter("gemini-edit", submit_result=AdapterError("boom"))
    service.adapter_factory = lambda provider_id: failed_adapter
    failed = service.submit(image_request())
    await service.run_job(failed.job_id)
    pending = service.submit(image_request())

    for job_id in (completed.job_id, failed.job_id, pending.job_id):
        view = service.get_status(job_id)
        has_artifact = service.media_repo.get_by_job(job_id) is not None
        assert has_artifact == (view.job.status is JobStatus.COMPLETED)


def test_get_status_unknown_job_returns_none(build_service):
    assert build_service().get_status("missing") is None


def test_recover_pending_jobs_requeues(build_service):
    pool = FakePool()
    service = build_service(pool=pool)
    service.submit(image_request())
    service.submit(image_request())
    service.job_repo.mark_processing("job-1")
    pool.submitted.clear()

    assert service.recover_pending_jobs() == 1
    assert pool.submitted == ["job-2"]


def test_storage_path_format():
    path = build_storage_path("arisa", MediaMode.VIDEO, datetime(2026, 1, 2, 3, 4, 5, 6))

    assert path == "arisa/videos/arisa_video_20260102030405000006.mp4"
    assert re.fullmatch(r"[a-z]+/videos/[a-z]+_video_\d{20}\.mp4", path)


@pytest.mark.asyncio
async def test_completion_failure_after_artifact_leaves_job_processing(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    service = build_service(adapter, stage_source_media=False, persist_retry_attempts=2)
    handle = service.submit(image_request())

    def locked(job_id: str, *, media_generation_id: str) -> bool:
        raise OperationalError("UPDATE generation_jobs", {}, Exception("database is locked"))

    service.job_repo.mark_completed = locked

    await service.run_job(handle.job_id)

    view = service.get_status(handle.job_id)
    assert view.job.status is JobStatus.PROCESSING
    assert view.job.error_message is None
    assert service.media_repo.get_by_job(handle.job_id) is not None
    assert service.job_repo.list_by_status(JobStatus.FAILED) == []


@pytest.mark.asyncio
async def test_job_lookup_error_after_claim_fails_job(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    service = build_service(adapter, stage_source_media=False)
    handle = service.submit(image_request())

    def broken(job_id: str):
        raise OperationalError("SELECT generation_jobs", {}, Exception("connection reset"))

    service.job_repo.get_job = broken

    await service.run_job(handle.job_id)

    failed = service.job_repo.list_by_status(JobStatus.FAILED)
    assert [job.job_id for job in failed] == [handle.job_id]
    assert "connection reset" in failed[0].error_message
    assert service.job_repo.list_by_status(JobStatus.PROCESSING) == []
    assert adapter.requests == []


@pytest.mark.asyncio
async def test_long_free_form_values_are_stored(build_service):
    adapter = FakeAdapter("gemini-edit", submit_result=Immediate("https://cdn/x.png"))
    service = build_service(adapter, stage_source_media=False)
    aspect_ratio = "custom-" + "9" * 40
    resolution = "ultra-high-definition-" + "8" * 30

    handle = service.submit(
        GenerationRequest(
            mode="image",
            platform="pinterest",
            source_url="https://x/img.png",
            shot_type="close-up",
            settings={"aspectRatio": aspect_ratio, "resolution": resolution},
        )
    )
    await service.run_job(handle.job_id)
    stored = service.submit(
        GenerationRequest(
            mode="image",
            platform="pinterest",
            source_url="https://x/img.png",
            shot_type="extreme-wide-establishing-shot",
        )
    )

    view = service.get_status(handle.job_id)
    assert view.job.status is JobStatus.COMPLETED
    assert view.artifact.aspect_ratio == aspect_ratio
    assert view.artifact.resolution == resolution
    assert service.job_repo.get_job(stored.job_id).shot_type == "extreme-wide-establishing-shot"


def test_overlong_persona_creates_no_job(build_service):
    service = build_service()

    with pytest.raises(ValidationError, match="at most 64 characters"):
        service.submit(
            GenerationRequest(
                mode="image",
                platform="pinterest",
                source_url="https://x/img.png",
                persona="p" * 65,
            )
        )

    assert service.job_repo.find_job("job-1") is None

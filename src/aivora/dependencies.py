"""Dependency wiring helpers."""

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .config import AppConfig
from .generation.generation_api import router as generation_router
from .generation.generation_service import GenerationService
from .health.health_api import router as health_router
from .media.blob_store import BlobStore, LocalBlobStore, SupabaseBlobStore
from .media.playable_url import TikTokUrlResolver
from .providers.providers_factory import create_adapter
from .references.reference_resolver import ReferenceResolver
from .repositories.generation_job_repository import GenerationJobRepository
from .repositories.media_generation_repository import MediaGenerationRepository
from .repositories.reference_repository import ReferenceRepository
from .workers.job_worker_pool import JobWorkerPool


def build_blob_store(config: AppConfig) -> BlobStore:
    if config.blob.backend == "supabase":
        return SupabaseBlobStore(
            project_url=config.blob.supabase_url,
            service_key=config.blob.supabase_service_key,
            bucket=config.blob.supabase_bucket,
        )
    return LocalBlobStore(
        root=config.media_paths.root,
        public_base_url=config.media_paths.public_base_url,
    )


def include_routers(app: FastAPI, config: AppConfig) -> None:
    """Mount module routers and attach services."""
    job_repo = GenerationJobRepository(config.session_factory)
    media_repo = MediaGenerationRepository(config.session_factory)
    reference_repo = ReferenceRepository(config.session_factory)
    blob_store = build_blob_store(config)

    generation_service = GenerationService(
        job_repo=job_repo,
        media_repo=media_repo,
        reference_resolver=ReferenceResolver(repo=reference_repo),
        blob_store=blob_store,
        url_resolver=TikTokUrlResolver(),
        providers=config.providers,
        adapter_factory=lambda provider_id: create_adapter(
            provider_id,
            providers=config.providers,
            api_key=config.wavespeed_api_key,
            timeout_seconds=config.provider_timeout_seconds,
        ),
        default_persona=config.default_persona,
        stage_source_media=config.stage_source_media,
        persist_retry_attempts=config.workers.persist_retry_attempts,
        persist_retry_delay_seconds=config.workers.persist_retry_delay_seconds,
    )
    worker_pool = JobWorkerPool(
        generation_service.run_job,
        worker_count=config.workers.worker_count,
        max_queue_size=config.workers.queue_size,
    )
    generation_service.worker_pool = worker_pool

    app.state.config = config
    app.state.job_repo = job_repo
    app.state.media_repo = media_repo
    app.state.blob_store = blob_store
    app.state.generation_service = generation_service
    app.state.worker_pool = worker_pool

    app.include_router(health_router)
    app.include_router(generation_router)

    if config.blob.backend == "local":
        app.mount(
            "/media",
            StaticFiles(directory=config.media_paths.root, check_dir=False),
            name="media",
        )

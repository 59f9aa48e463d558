"""Application configuration builder.

Environment variables (``AIVORA_`` prefix, optional ``.env``) are read once by
:func:`load_config`; the resulting :class:`AppConfig` is passed by reference
into services and adapters.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db
from .providers.providers_base import ProviderEndpoint


class EnvSettings(BaseSettings):
    """Raw environment values."""

    model_config = SettingsConfigDict(env_prefix="AIVORA_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///aivora.db"
    media_root: Path = Path("media")
    public_media_base_url: str = "http://localhost:8000/media"
    blob_backend: str = Field(default="local", pattern="^(local|supabase)$")
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_bucket: str = "aivora-gallery"

    wavespeed_api_key: str = ""
    wavespeed_base_url: str = "https://api.wavespeed.ai"
    provider_timeout_seconds: float = Field(default=30.0, gt=0)
    image_poll_interval_ms: int = Field(default=3_000, ge=0)
    image_max_poll_attempts: int = Field(default=30, ge=1)
    video_poll_interval_ms: int = Field(default=5_000, ge=0)
    video_max_poll_attempts: int = Field(default=60, ge=1)

    worker_count: int = Field(default=4, ge=1)
    worker_queue_size: int = Field(default=64, ge=1)
    worker_drain_seconds: float = Field(default=30.0, ge=0)
    persist_retry_attempts: int = Field(default=3, ge=1)
    persist_retry_delay_seconds: float = Field(default=2.0, ge=0)
    stage_source_media: bool = True
    default_persona: str = "arisa"
    cors_origin: str = "*"


@dataclass(frozen=True, slots=True)
class MediaPaths:
    root: Path
    public_base_url: str


@dataclass(frozen=True, slots=True)
class BlobSettings:
    backend: str
    supabase_url: str
    supabase_service_key: str
    supabase_bucket: str


@dataclass(frozen=True, slots=True)
class WorkerSettings:
    worker_count: int
    queue_size: int
    drain_seconds: float
    persist_retry_attempts: int
    persist_retry_delay_seconds: float


@dataclass(frozen=True, slots=True)
class AppConfig:
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]
    media_paths: MediaPaths
    blob: BlobSettings
    workers: WorkerSettings
    providers: Mapping[str, ProviderEndpoint]
    wavespeed_api_key: str
    provider_timeout_seconds: float
    stage_source_media: bool
    default_persona: str
    cors_origin: str


def build_provider_table(env: EnvSettings) -> Mapping[str, ProviderEndpoint]:
    """Return the read-only provider table for the configured Wavespeed host."""
    base = env.wavespeed_base_url.rstrip("/")
    task_status = f"{base}/v1/task/{{task_id}}"
    image_poll = (env.image_poll_interval_ms, env.image_max_poll_attempts)
    video_poll = (env.video_poll_interval_ms, env.video_max_poll_attempts)
    endpoints = [
        ProviderEndpoint(
            provider_id="gemini-edit",
            kind="image",
            model="gemini-2.5-flash-image-preview-edit",
            display_name="Gemini 2.5 Flash Image Edit",
            submit_url=f"{base}/api/v3/google/gemini-2.5-flash-image-preview-edit",
            status_url=f"{base}/api/v3/predictions/{{task_id}}/result",
            poll_interval_ms=image_poll[0],
            max_attempts=image_poll[1],
        ),
        ProviderEndpoint(
            provider_id="seedream-edit",
            kind="image",
            model="seedream-v4.5-edit",
            display_name="Seedream 4.5 Edit",
            submit_url=f"{base}/api/v3/bytedance/seedream-v4.5/edit",
            status_url=task_status,
            poll_interval_ms=image_poll[0],
            max_attempts=image_poll[1],
        ),
        ProviderEndpoint(
            provider_id="wan-animate",
            kind="video",
            model="wan-2.2-animate-replace",
            display_name="WAN 2.2 Animate",
            submit_url=f"{base}/v1/wan/video/animate/replace",
            status_url=task_status,
            poll_interval_ms=video_poll[0],
            max_attempts=video_poll[1],
        ),
        ProviderEndpoint(
            provider_id="kling",
            kind="video",
            model="kling-2.6",
            display_name="Kling 2.6",
            submit_url=f"{base}/v1/kling/video/generate",
            status_url=task_status,
            poll_interval_ms=video_poll[0],
            max_attempts=video_poll[1],
        ),
        ProviderEndpoint(
            provider_id="veo",
            kind="video",
            model="veo-3.1",
            display_name="Veo 3.1",
            submit_url=f"{base}/v1/veo/video/generate",
            status_url=task_status,
            poll_interval_ms=video_poll[0],
            max_attempts=video_poll[1],
        ),
    ]
    return MappingProxyType({endpoint.provider_id: endpoint for endpoint in endpoints})


def load_config(env: EnvSettings | None = None) -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    env = env or EnvSettings()
    env.media_root.mkdir(parents=True, exist_ok=True)

    connect_args = {"check_same_thread": False} if env.database_url.startswith("sqlite") else {}
    engine = create_engine(env.database_url, future=True, connect_args=connect_args)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine)

    return AppConfig(
        database_url=env.database_url,
        engine=engine,
        session_factory=session_factory,
        media_paths=MediaPaths(root=env.media_root, public_base_url=env.public_media_base_url),
        blob=BlobSettings(
            backend=env.blob_backend,
            supabase_url=env.supabase_url,
            supabase_service_key=env.supabase_service_key,
            supabase_bucket=env.supabase_bucket,
        ),
        workers=WorkerSettings(
            worker_count=env.worker_count,
            queue_size=env.worker_queue_size,
            drain_seconds=env.worker_drain_seconds,
            persist_retry_attempts=env.persist_retry_attempts,
            persist_retry_delay_seconds=env.persist_retry_delay_seconds,
        ),
        providers=build_provider_table(env),
        wavespeed_api_key=env.wavespeed_api_key,
        provider_timeout_seconds=env.provider_timeout_seconds,
        stage_source_media=env.stage_source_media,
        default_persona=env.default_persona,
        cors_origin=env.cors_origin,
    )

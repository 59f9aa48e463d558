"""Durable blob storage for generated media."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class BlobStoreError(Exception):
    """Raised when an object cannot be read or written."""


class BlobStore(Protocol):
    async def put(self, data: bytes, path: str, *, content_type: str) -> str:
        """Store ``data`` under ``path`` and return its public URL."""

    async def get(self, url: str) -> bytes:
        """Fetch raw bytes from ``url``."""

    def is_durable(self, url: str) -> bool:
        """Whether ``url`` already points into this store."""


async def download(url: str, *, timeout_seconds: float) -> bytes:
    try:
        async with httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True) as client:
            response = await client.get(url)
    except httpx.HTTPError as exc:
        raise BlobStoreError(f"Failed to download file: {exc}") from exc
    if response.status_code != 200:
        raise BlobStoreError(f"Failed to download file: HTTP {response.status_code}")
    return response.content


def _safe_relative(path: str) -> str:
    parts = [part for part in path.replace("\\", "/").split("/") if part not in ("", ".", "..")]
    if not parts:
        raise BlobStoreError(f"Invalid blob path '{path}'")
    return "/".join(parts)


@dataclass(slots=True)
class LocalBlobStore:
    """Files under ``root`` served publicly from ``public_base_url``."""

    root: Path
    public_base_url: str
    timeout_seconds: float = 30.0
    log: logging.Logger = field(default_factory=lambda: logger)

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{quote(_safe_relative(path))}"

    async def put(self, data: bytes, path: str, *, content_type: str) -> str:
        relative = _safe_relative(path)
        target = self.root / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise BlobStoreError(f"Failed to write '{relative}': {exc}") from exc
        self.log.info(
            "blob.local.stored",
            extra={"path": relative, "size_bytes": len(data), "content_type": content_type},
        )
        return self.public_url(relative)

    async def get(self, url: str) -> bytes:
        prefix = self.public_base_url.rstrip("/") + "/"
        if url.startswith(prefix):
            target = self.root / _safe_relative(url[len(prefix):])
            try:
                return target.read_bytes()
            except OSError as exc:
                raise BlobStoreError(f"Failed to read '{target}': {exc}") from exc
        return await download(url, timeout_seconds=self.timeout_seconds)

    def is_durable(self, url: str) -> bool:
        return url.startswith(self.public_base_url.rstrip("/") + "/")


@dataclass(slots=True)
class SupabaseBlobStore:
    """Supabase Storage bucket accessed through its REST API."""

    project_url: str
    service_key: str
    bucket: str = "aivora-gallery"
    timeout_seconds: float = 60.0
    log: logging.Logger = field(default_factory=lambda: logger)

    def public_url(self, path: str) -> str:
        return (
            f"{self.project_url.rstrip('/')}/storage/v1/object/public/"
            f"{self.bucket}/{quote(_safe_relative(path))}"
        )

    async def put(self, data: bytes, path: str, *, content_type: str) -> str:
        relative = _safe_relative(path)
        url = f"{self.project_url.rstrip('/')}/storage/v1/object/{self.bucket}/{quote(relative)}"
        headers = {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": content_type,
            "x-upsert": "false",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(url, headers=headers, content=data)
        except httpx.HTTPError as exc:
            raise BlobStoreError(f"Failed to upload to Supabase: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise BlobStoreError(
                f"Failed to upload to Supabase: HTTP {response.status_code} {response.text}"
            )
        public = self.public_url(relative)
        self.log.info("blob.supabase.stored", extra={"path": relative, "url": public})
        return public

    async def get(self, url: str) -> bytes:
        return await download(url, timeout_seconds=self.timeout_seconds)

    def is_durable(self, url: str) -> bool:
        prefix = f"{self.project_url.rstrip('/')}/storage/v1/object/public/{self.bucket}/"
        return url.startswith(prefix)

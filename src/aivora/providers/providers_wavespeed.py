"""Shared HTTP plumbing for Wavespeed-hosted models."""

from __future__ import annotations

import logging
import random
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..generation.generation_errors import AdapterError
from .providers_base import (
    AdapterRequest,
    AdapterResult,
    Pending,
    PollStatus,
    ProviderAdapter,
    ProviderEndpoint,
)

logger = logging.getLogger(__name__)

DONE_STATUSES = frozenset({"completed", "succeeded"})
FAILED_STATUSES = frozenset({"failed", "error"})

MAX_ERROR_BODY_CHARS = 2000


@dataclass(slots=True)
class WavespeedAdapter(ProviderAdapter):
    """Submit/poll against the Wavespeed REST API with bearer auth."""

    endpoint: ProviderEndpoint
    api_key: str
    timeout_seconds: float = 30.0
    log: logging.Logger = field(default_factory=lambda: logger)

    async def submit(self, request: AdapterRequest) -> AdapterResult:
        body = self.build_body(request)
        self.log.info(
            "provider.submit.start",
            extra={
                "provider": self.provider_id,
                "model": self.endpoint.model,
                "reference_count": len(request.references),
                "prompt_len": len(request.prompt),
            },
        )
        payload = await self._request("POST", self.endpoint.submit_url, json=body, label="submit")
        result = self.parse_submit(payload)
        if result is None:
            raise AdapterError(
                f"{self.endpoint.display_name} returned an unexpected response format"
            )
        self.log.info(
            "provider.submit.accepted",
            extra={"provider": self.provider_id, "result": type(result).__name__},
        )
        return result

    async def check_status(self, task_handle: str) -> PollStatus:
        url = self.endpoint.status_url.format(task_id=task_handle)
        payload = await self._request("GET", url, label="status")
        return self.parse_status(payload)

    @abstractmethod
    def build_body(self, request: AdapterRequest) -> dict[str, Any]:
        """Translate the internal request into the provider JSON body."""

    @abstractmethod
    def parse_submit(self, payload: dict[str, Any]) -> AdapterResult | None:
        """Return ``None`` when the body has neither a result nor a task handle."""

    @abstractmethod
    def parse_status(self, payload: dict[str, Any]) -> PollStatus:
        """Map provider status vocabulary onto :class:`PollStatus`."""

    def _pending(self, task_id: Any) -> Pending:
        return Pending(task_handle=str(task_id), poll_interval_ms=self.endpoint.poll_interval_ms)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        label: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if json is not None:
            headers["Content-Type"] = "application/json"
        name = self.endpoint.display_name
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                if method == "POST":
                    response = await client.post(url, headers=headers, json=json)
                else:
                    response = await client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise AdapterError(f"{name} {label} request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            text = (response.text or "")[:MAX_ERROR_BODY_CHARS]
            self.log.warning(
                "provider.http_error",
                extra={
                    "provider": self.provider_id,
                    "label": label,
                    "status_code": response.status_code,
                    "body": text,
                },
            )
            raise AdapterError(
                f"{name} {label} error {response.status_code}: {text}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise AdapterError(
                f"{name} {label} returned a non-JSON body",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise AdapterError(
                f"{name} {label} returned an unexpected response format",
                status_code=response.status_code,
            )
        return payload


def normalize_status(value: Any) -> str:
    return str(value or "").strip().lower()


def resolve_seed(settings: dict[str, Any]) -> int:
    seed = settings.get("seed")
    if isinstance(seed, int) and not isinstance(seed, bool):
        return seed
    return random.randint(0, 999_999)

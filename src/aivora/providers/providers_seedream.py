"""Seedream 4.5 image edit, served through Wavespeed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..generation.validation import is_nsfw_enabled
from ..repositories.reference_repository import PersonaProfile
from .prompts import DEFAULT_NEGATIVE_PROMPT, build_identity_prompt
from .providers_base import AdapterRequest, AdapterResult, Immediate, PollStatus
from .providers_wavespeed import (
    DONE_STATUSES,
    FAILED_STATUSES,
    WavespeedAdapter,
    normalize_status,
    resolve_seed,
)

MAX_REFERENCE_IMAGES = 2


@dataclass(slots=True)
class SeedreamEditAdapter(WavespeedAdapter):
    """NSFW-capable image edit using up to two reference images."""

    default_aspect_ratio = "3:4"
    default_resolution = "2K"

    def build_prompt(self, profile: PersonaProfile | None) -> str:
        return build_identity_prompt(profile)

    def build_body(self, request: AdapterRequest) -> dict[str, Any]:
        settings = request.settings
        references = request.references_for("face") + request.references_for("body")
        body: dict[str, Any] = {
            "model": self.endpoint.model,
            "source_image": request.source_url,
            "reference_images": [ref.url for ref in references[:MAX_REFERENCE_IMAGES]],
            "prompt": request.prompt,
            "negative_prompt": settings.get("negativePrompt") or DEFAULT_NEGATIVE_PROMPT,
            "num_images": 1,
            "guidance_scale": 7.5,
            "seed": resolve_seed(settings),
            "enable_safety_checker": not is_nsfw_enabled(settings),
        }
        if settings.get("aspectRatio"):
            body["aspect_ratio"] = settings["aspectRatio"]
        return body

    def parse_submit(self, payload: dict[str, Any]) -> AdapterResult | None:
        if payload.get("task_id"):
            return self._pending(payload["task_id"])
        url = _first_image_url(payload)
        if url:
            return Immediate(artifact_url=url)
        return None

    def parse_status(self, payload: dict[str, Any]) -> PollStatus:
        status = normalize_status(payload.get("status"))
        if status in DONE_STATUSES:
            url = _first_image_url(payload.get("output") or {}) or _first_image_url(payload)
            if url:
                return PollStatus.done(url)
            return PollStatus.failed(f"{self.endpoint.display_name} completed without images")
        if status in FAILED_STATUSES:
            return PollStatus.failed(
                str(payload.get("error") or f"{self.endpoint.display_name} generation failed")
            )
        return PollStatus.pending()


def _first_image_url(container: Any) -> str | None:
    if not isinstance(container, dict):
        return None
    images = container.get("images") or []
    if images and isinstance(images[0], dict) and images[0].get("url"):
        return str(images[0]["url"])
    return None

"""Video models served through Wavespeed (WAN Animate, Kling, Veo).

All three share the ``task_id`` submission shape and the ``/v1/task/{id}``
status endpoint; they differ only in their endpoint and model name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..repositories.reference_repository import PersonaProfile
from .prompts import build_identity_prompt
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
class WavespeedVideoAdapter(WavespeedAdapter):
    default_aspect_ratio = "9:16"
    default_resolution = "720p"

    def build_prompt(self, profile: PersonaProfile | None) -> str:
        return build_identity_prompt(profile)

    def build_body(self, request: AdapterRequest) -> dict[str, Any]:
        settings = request.settings
        faces = request.references_for("face") or request.references
        body: dict[str, Any] = {
            "model": self.endpoint.model,
            "source_video": request.source_url,
            "reference_images": [ref.url for ref in faces[:MAX_REFERENCE_IMAGES]],
            "prompt": request.prompt,
            "num_frames": _positive_int(settings.get("numFrames"), 64),
            "fps": _positive_int(settings.get("fps"), 24),
            "resolution": settings.get("resolution") or self.default_resolution,
            "cfg_scale": 7.5,
            "seed": resolve_seed(settings),
        }
        if settings.get("aspectRatio"):
            body["aspect_ratio"] = settings["aspectRatio"]
        return body

    def parse_submit(self, payload: dict[str, Any]) -> AdapterResult | None:
        if payload.get("task_id"):
            return self._pending(payload["task_id"])
        url = payload.get("video_url") or payload.get("output")
        if isinstance(url, str) and url:
            return Immediate(artifact_url=url)
        return None

    def parse_status(self, payload: dict[str, Any]) -> PollStatus:
        status = normalize_status(payload.get("status"))
        if status in DONE_STATUSES:
            output = payload.get("output")
            url = (output.get("video_url") if isinstance(output, dict) else None) or payload.get(
                "video_url"
            )
            if url:
                return PollStatus.done(str(url))
            return PollStatus.failed(f"{self.endpoint.display_name} completed without a video")
        if status in FAILED_STATUSES:
            return PollStatus.failed(
                str(payload.get("error") or f"{self.endpoint.display_name} animation failed")
            )
        return PollStatus.pending()


def _positive_int(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return default

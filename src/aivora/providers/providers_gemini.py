"""Gemini 2.5 Flash image edit, served through Wavespeed."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..repositories.reference_repository import PersonaProfile
from .prompts import build_face_swap_prompt
from .providers_base import AdapterRequest, AdapterResult, Immediate, PollStatus
from .providers_wavespeed import (
    DONE_STATUSES,
    FAILED_STATUSES,
    WavespeedAdapter,
    normalize_status,
)


@dataclass(slots=True)
class GeminiEditAdapter(WavespeedAdapter):
    """SFW image edit. Takes a single reference image.

    Wavespeed v3 wraps everything in ``data``: ``data.id`` is the prediction
    id, ``data.outputs`` holds result URLs once the prediction is done.
    """

    default_aspect_ratio = "3:4"
    default_resolution = "2K"

    def build_prompt(self, profile: PersonaProfile | None) -> str:
        return build_face_swap_prompt(profile)

    def build_body(self, request: AdapterRequest) -> dict[str, Any]:
        body: dict[str, Any] = {
            "image": request.source_url,
            "prompt": request.prompt,
        }
        faces = request.references_for("face") or request.references
        if faces:
            body["reference_image"] = faces[0].url
        settings = request.settings
        if settings.get("aspectRatio"):
            body["aspect_ratio"] = settings["aspectRatio"]
        if settings.get("outputFormat"):
            body["output_format"] = settings["outputFormat"]
        return body

    def parse_submit(self, payload: dict[str, Any]) -> AdapterResult | None:
        data = payload.get("data")
        if not isinstance(data, dict):
            return None
        outputs = data.get("outputs") or []
        if outputs:
            return Immediate(artifact_url=str(outputs[0]))
        if data.get("id"):
            return self._pending(data["id"])
        return None

    def parse_status(self, payload: dict[str, Any]) -> PollStatus:
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
        status = normalize_status(data.get("status"))
        if status in DONE_STATUSES:
            outputs = data.get("outputs") or []
            if outputs:
                return PollStatus.done(str(outputs[0]))
            return PollStatus.failed(f"{self.endpoint.display_name} completed without outputs")
        if status in FAILED_STATUSES:
            return PollStatus.failed(
                str(data.get("error") or f"{self.endpoint.display_name} generation failed")
            )
        return PollStatus.pending()

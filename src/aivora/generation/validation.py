"""Request validation for generation submissions."""

from __future__ import annotations

from typing import Any

from .generation_errors import ValidationError
from .generation_models import GenerationRequest, MediaMode, Platform, ValidatedRequest

# Matches the persona column width.
MAX_PERSONA_LENGTH = 64

SHOT_TYPE_ALIASES = {
    "close-up": "close",
    "half-body": "half",
    "full-body": "full",
}


def normalize_shot_type(shot_type: str | None) -> str | None:
    """Map extension shot labels onto stored values.

    Unknown non-empty values pass through unchanged; empty values become
    ``None`` so the adapter picks its own default.
    """
    if not shot_type:
        return None
    return SHOT_TYPE_ALIASES.get(shot_type, shot_type)


def is_nsfw_enabled(settings: dict[str, Any]) -> bool:
    value = settings.get("enableNSFW", False)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def validate_request(request: GenerationRequest, *, default_persona: str) -> ValidatedRequest:
    """Check required fields and normalise optional ones."""
    missing = [
        name
        for name, value in (
            ("mode", request.mode),
            ("platform", request.platform),
            ("sourceUrl", request.source_url),
        )
        if not value
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    try:
        mode = MediaMode(request.mode)
    except ValueError:
        raise ValidationError('Invalid mode. Must be "image" or "video"') from None

    try:
        platform = Platform(request.platform)
    except ValueError:
        allowed = ", ".join(p.value for p in Platform)
        raise ValidationError(f"Invalid platform. Must be one of: {allowed}") from None

    settings = request.settings if request.settings is not None else {}
    if not isinstance(settings, dict):
        raise ValidationError("settings must be an object")

    persona = request.persona or settings.get("persona") or default_persona
    if not isinstance(persona, str) or not persona.strip():
        raise ValidationError("persona must be a non-empty string")
    persona = persona.strip().lower()
    if len(persona) > MAX_PERSONA_LENGTH:
        raise ValidationError(f"persona must be at most {MAX_PERSONA_LENGTH} characters")

    return ValidatedRequest(
        mode=mode,
        platform=platform,
        source_url=str(request.source_url),
        shot_type=normalize_shot_type(request.shot_type),
        settings=dict(settings),
        persona=persona,
    )

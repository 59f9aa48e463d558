"""Prompt synthesis from persona profiles."""

from __future__ import annotations

from typing import Any

from ..repositories.reference_repository import PersonaProfile

DEFAULT_NEGATIVE_PROMPT = (
    "blurry, low quality, distorted, deformed, ugly, bad anatomy, watermark, text, error"
)


def build_face_swap_prompt(profile: PersonaProfile | None) -> str:
    """Short instruction used by edit models that take a single reference."""
    parts: list[str] = []
    if profile is not None and profile.nickname:
        parts.append(f"Replace face with {profile.nickname}'s face")
    else:
        parts.append("Replace face")

    traits = (profile.physical_traits if profile is not None else None) or {}
    described: list[str] = []
    if traits.get("hair_color"):
        described.append(f"{traits['hair_color']} hair")
    if traits.get("eye_color"):
        described.append(f"{traits['eye_color']} eyes")
    if traits.get("skin_tone"):
        described.append(str(traits["skin_tone"]))
    if described:
        parts.append(", ".join(described))

    parts.append("preserve original outfit and background")
    return ". ".join(parts) + "."


def build_identity_prompt(profile: PersonaProfile | None) -> str:
    """Descriptive prompt used by Seedream and the video models."""
    if profile is None:
        return "A beautiful 20-year-old Thai woman."

    name = profile.nickname or profile.full_name or profile.persona
    prompts = [
        f"A beautiful {profile.age or 20}-year-old {profile.nationality or 'Thai'} woman named {name}."
    ]
    if profile.backstory:
        prompts.append(profile.backstory)
    if profile.aesthetic:
        prompts.append(f"Style: {', '.join(_flatten(profile.aesthetic.values()))}")
    if profile.archetype:
        prompts.append(f"Personality: {profile.archetype}")
    return " ".join(prompts)


def _flatten(values: Any) -> list[str]:
    flat: list[str] = []
    for value in values:
        if isinstance(value, (list, tuple)):
            flat.extend(str(item) for item in value)
        elif value:
            flat.append(str(value))
    return flat

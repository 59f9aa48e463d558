"""Persona reference lookup used by provider adapters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..providers.providers_base import ReferenceImage
from ..repositories.reference_repository import PersonaProfile, ReferenceRepository, ReferenceRow

logger = logging.getLogger(__name__)

FACE_SHOT_TYPES = frozenset({"close", "half", "full"})
BODY_SHOT_TYPES = frozenset({"half", "full"})

FACE_FALLBACKS = ("close",)
BODY_FALLBACKS = ("half", "close")


@dataclass(slots=True)
class ReferenceSet:
    face: list[ReferenceImage] = field(default_factory=list)
    body: list[ReferenceImage] = field(default_factory=list)

    def all(self) -> list[ReferenceImage]:
        return [*self.face, *self.body]


@dataclass(slots=True)
class ReferenceResolver:
    """Pick reference images for a persona and shot framing."""

    repo: ReferenceRepository
    log: logging.Logger = field(default_factory=lambda: logger)

    def resolve(self, persona: str, shot_type: str | None) -> ReferenceSet:
        references = ReferenceSet()
        if shot_type in FACE_SHOT_TYPES:
            rows = self.repo.list_active(persona, "face")
            references.face = _pick(rows, shot_type, FACE_FALLBACKS, role="face")
        if shot_type in BODY_SHOT_TYPES:
            rows = self.repo.list_active(persona, "body")
            references.body = _pick(rows, shot_type, BODY_FALLBACKS, role="body")

        self.log.info(
            "references.resolved",
            extra={
                "persona": persona,
                "shot_type": shot_type,
                "face_count": len(references.face),
                "body_count": len(references.body),
            },
        )
        return references

    def get_profile(self, persona: str) -> PersonaProfile | None:
        return self.repo.get_profile(persona)


def _pick(
    rows: list[ReferenceRow],
    shot_type: str,
    fallbacks: tuple[str, ...],
    *,
    role: str,
) -> list[ReferenceImage]:
    by_type: dict[str, list[str]] = {}
    for row in rows:
        by_type.setdefault(row.shot_type, []).append(row.image_url)

    for candidate in (shot_type, *fallbacks):
        urls = by_type.get(candidate)
        if urls:
            return [ReferenceImage(url=url, role=role) for url in urls]
    return [ReferenceImage(url=row.image_url, role=role) for row in rows]

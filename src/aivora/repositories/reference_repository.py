"""Read access to persona profiles and reference images."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db.db_models import InfluencerProfileModel, InfluencerReferenceModel


@dataclass(slots=True)
class ReferenceRow:
    category: str
    shot_type: str
    image_url: str


@dataclass(slots=True)
class PersonaProfile:
    persona: str
    full_name: str | None = None
    nickname: str | None = None
    age: int | None = None
    nationality: str | None = None
    backstory: str | None = None
    archetype: str | None = None
    aesthetic: dict[str, Any] | None = None
    physical_traits: dict[str, Any] | None = None


class ReferenceRepository:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def list_active(self, persona: str, category: str) -> list[ReferenceRow]:
        """Return active references for ``persona`` ordered by shot type."""
        with self._session_factory() as session:
            rows = session.scalars(
                select(InfluencerReferenceModel)
                .where(
                    func.lower(InfluencerReferenceModel.persona) == persona.lower(),
                    InfluencerReferenceModel.category == category,
                    InfluencerReferenceModel.is_active.is_(True),
                )
                .order_by(
                    InfluencerReferenceModel.shot_type,
                    InfluencerReferenceModel.weight.desc(),
                    InfluencerReferenceModel.created_at,
                )
            ).all()
            return [
                ReferenceRow(category=row.category, shot_type=row.shot_type, image_url=row.image_url)
                for row in rows
            ]

    def get_profile(self, persona: str) -> PersonaProfile | None:
        with self._session_factory() as session:
            model = session.scalars(
                select(InfluencerProfileModel).where(
                    func.lower(InfluencerProfileModel.persona) == persona.lower()
                )
            ).first()
            if model is None:
                return None
            return PersonaProfile(
                persona=model.persona,
                full_name=model.full_name,
                nickname=model.nickname,
                age=model.age,
                nationality=model.nationality,
                backstory=model.backstory,
                archetype=model.archetype,
                aesthetic=dict(model.aesthetic) if model.aesthetic else None,
                physical_traits=dict(model.physical_traits) if model.physical_traits else None,
            )

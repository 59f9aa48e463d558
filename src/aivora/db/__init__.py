"""Database models and bootstrap helpers."""

from .db_models import (
    Base,
    GenerationJobModel,
    InfluencerProfileModel,
    InfluencerReferenceModel,
    MediaGenerationModel,
)

__all__ = [
    "Base",
    "GenerationJobModel",
    "InfluencerProfileModel",
    "InfluencerReferenceModel",
    "MediaGenerationModel",
]

"""Adapter selection policy and factory."""

from __future__ import annotations

from collections.abc import Mapping

from ..generation.generation_models import MediaMode
from .providers_base import ProviderAdapter, ProviderEndpoint
from .providers_gemini import GeminiEditAdapter
from .providers_seedream import SeedreamEditAdapter
from .providers_video import WavespeedVideoAdapter
from .providers_wavespeed import WavespeedAdapter

GEMINI_EDIT = "gemini-edit"
SEEDREAM_EDIT = "seedream-edit"
WAN_ANIMATE = "wan-animate"
KLING = "kling"
VEO = "veo"

SELECTION_TABLE: Mapping[tuple[MediaMode, bool], str] = {
    (MediaMode.IMAGE, False): GEMINI_EDIT,
    (MediaMode.IMAGE, True): SEEDREAM_EDIT,
    (MediaMode.VIDEO, False): WAN_ANIMATE,
    (MediaMode.VIDEO, True): WAN_ANIMATE,
}

VIDEO_MODEL_OVERRIDES: Mapping[str, str] = {
    "wan-22": WAN_ANIMATE,
    "kling-25": KLING,
    "veo-31": VEO,
}

ADAPTER_CLASSES: Mapping[str, type[WavespeedAdapter]] = {
    GEMINI_EDIT: GeminiEditAdapter,
    SEEDREAM_EDIT: SeedreamEditAdapter,
    WAN_ANIMATE: WavespeedVideoAdapter,
    KLING: WavespeedVideoAdapter,
    VEO: WavespeedVideoAdapter,
}


def select_provider(
    mode: MediaMode,
    enable_nsfw: bool,
    video_model: str | None = None,
) -> str:
    """Return the provider id for a request.

    Depends only on its arguments. ``video_model`` is consulted for video
    requests only; unknown values fall back to the table entry.
    """
    mode = MediaMode(mode)
    if mode is MediaMode.VIDEO and video_model:
        override = VIDEO_MODEL_OVERRIDES.get(video_model)
        if override is not None:
            return override
    return SELECTION_TABLE[(mode, bool(enable_nsfw))]


def create_adapter(
    provider_id: str,
    *,
    providers: Mapping[str, ProviderEndpoint],
    api_key: str,
    timeout_seconds: float,
) -> ProviderAdapter:
    """Instantiate the adapter for ``provider_id``."""
    try:
        adapter_cls = ADAPTER_CLASSES[provider_id]
        endpoint = providers[provider_id]
    except KeyError:
        raise ValueError(f"Unsupported provider '{provider_id}'") from None
    return adapter_cls(endpoint=endpoint, api_key=api_key, timeout_seconds=timeout_seconds)

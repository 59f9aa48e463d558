"""Provider adapters for Wavespeed-hosted generation models."""

from .providers_base import AdapterRequest, Immediate, Pending, PollStatus, ProviderAdapter
from .providers_factory import create_adapter, select_provider

__all__ = [
    "AdapterRequest",
    "Immediate",
    "Pending",
    "PollStatus",
    "ProviderAdapter",
    "create_adapter",
    "select_provider",
]

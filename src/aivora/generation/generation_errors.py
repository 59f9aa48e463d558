"""Domain-specific exceptions for the generation pipeline."""

from __future__ import annotations


class GenerationError(Exception):
    """Base class for generation-related errors."""


class ValidationError(GenerationError):
    """Raised when a generation request is malformed; no job is created."""


class QueueFullError(GenerationError):
    """Raised when the worker pool cannot accept another job."""


class AdapterError(GenerationError):
    """Raised when a provider rejects or fails a submission or status call."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderTaskFailedError(GenerationError):
    """Raised when a provider task reaches a failed terminal state."""


class PollTimeoutError(GenerationError):
    """Raised when a provider task stays pending for the whole attempt budget."""


class ReferenceResolutionError(GenerationError):
    """Raised when a persona has no usable reference images."""


class PersistenceError(GenerationError):
    """Raised when a generated artifact cannot be stored durably."""

    def __init__(self, message: str, *, artifact_url: str | None = None) -> None:
        super().__init__(message)
        self.artifact_url = artifact_url

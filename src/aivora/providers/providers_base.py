"""Provider adapter contract.

Every generation backend sits behind :class:`ProviderAdapter`. ``submit``
returns either an :class:`Immediate` result or a :class:`Pending` task handle;
``check_status`` folds the provider's own status vocabulary into the
three-valued :class:`PollStatus` understood by the poller. Adapters never
touch job records and never retry.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from ..repositories.reference_repository import PersonaProfile


@dataclass(frozen=True, slots=True)
class ProviderEndpoint:
    """Static description of one provider integration."""

    provider_id: str
    kind: str  # image|video
    model: str
    display_name: str
    submit_url: str
    status_url: str  # formatted with ``task_id``
    poll_interval_ms: int
    max_attempts: int


@dataclass(frozen=True, slots=True)
class ReferenceImage:
    url: str
    role: str  # face|body


@dataclass(slots=True)
class AdapterRequest:
    source_url: str
    references: list[ReferenceImage]
    prompt: str
    settings: dict[str, Any] = field(default_factory=dict)

    def references_for(self, role: str) -> list[ReferenceImage]:
        return [ref for ref in self.references if ref.role == role]


@dataclass(frozen=True, slots=True)
class Immediate:
    artifact_url: str


@dataclass(frozen=True, slots=True)
class Pending:
    task_handle: str
    poll_interval_ms: int


AdapterResult = Immediate | Pending


class TaskState(StrEnum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PollStatus:
    state: TaskState
    artifact_url: str | None = None
    reason: str | None = None

    @classmethod
    def pending(cls) -> "PollStatus":
        return cls(TaskState.PENDING)

    @classmethod
    def done(cls, artifact_url: str) -> "PollStatus":
        return cls(TaskState.DONE, artifact_url=artifact_url)

    @classmethod
    def failed(cls, reason: str) -> "PollStatus":
        return cls(TaskState.FAILED, reason=reason)


class ProviderAdapter(ABC):
    """Base interface for provider adapters."""

    endpoint: ProviderEndpoint
    default_aspect_ratio: str | None = None
    default_resolution: str | None = None

    @property
    def provider_id(self) -> str:
        return self.endpoint.provider_id

    @property
    def max_attempts(self) -> int:
        return self.endpoint.max_attempts

    @abstractmethod
    async def submit(self, request: AdapterRequest) -> AdapterResult:
        """Submit one generation request."""

    @abstractmethod
    async def check_status(self, task_handle: str) -> PollStatus:
        """Query provider status for ``task_handle``."""

    @abstractmethod
    def build_prompt(self, profile: "PersonaProfile | None") -> str:
        """Derive a prompt from the persona profile."""

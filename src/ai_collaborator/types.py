"""Core value types for the agent execution engine.

Tasks and results are immutable once built. Agent state is a small tagged
value so that ``busy`` and ``error`` can carry their payload.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, IntEnum, auto
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

from .capabilities import Capability
from .exceptions import InvalidTaskError

DEFAULT_TASK_TIMEOUT = 60.0


def utc_now() -> datetime:
    return datetime.now(UTC)


class TaskPriority(IntEnum):
    """Priority of a task, ordered from lowest to highest."""
    LOW = 0
    NORMAL = 1
    HIGH = 2
    CRITICAL = 3


class ResultStatus(Enum):
    """Outcome of a task attempt."""
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class Task:
    """A unit of work submitted for processing.

    Attributes:
        description: Human-readable description of the work
        query: The primary input string sent to the model
        required_capabilities: Capabilities an agent must advertise to take the task
        context: Hints such as ``language`` or ``conversationHistory`` (read-only)
        priority: Task priority
        timeout: Seconds allowed for processing
        created_by: Optional origin tag (for example ``cli``)
        id: Unique task identifier
    """
    description: str
    query: str
    required_capabilities: frozenset[Capability]
    context: Mapping[str, Any] = field(default_factory=dict, hash=False)
    priority: TaskPriority = TaskPriority.NORMAL
    timeout: float = DEFAULT_TASK_TIMEOUT
    created_by: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __post_init__(self) -> None:
        capabilities = frozenset(self.required_capabilities)
        if not capabilities:
            raise InvalidTaskError("a task must require at least one capability")
        if self.timeout <= 0:
            raise InvalidTaskError(f"timeout must be positive, got {self.timeout}")
        object.__setattr__(self, "required_capabilities", capabilities)
        object.__setattr__(self, "context", MappingProxyType(dict(self.context)))

    def requires(self, *capabilities: Capability) -> bool:
        """Check whether the task requires any of the given capabilities."""
        return any(cap in self.required_capabilities for cap in capabilities)

    def with_query(self, query: str) -> "Task":
        """Return a copy of this task (same id) with a different query."""
        return Task(
            description=self.description,
            query=query,
            required_capabilities=self.required_capabilities,
            context=dict(self.context),
            priority=self.priority,
            timeout=self.timeout,
            created_by=self.created_by,
            id=self.id,
        )


@dataclass(frozen=True)
class TaskResult:
    """The recorded outcome of attempting a task.

    Attributes:
        task_id: ID of the task this result belongs to
        status: Completed, failed or timed out
        output: Result payload (usually the generated text)
        completed_at: When the attempt finished (UTC)
        execution_time: Seconds spent processing, if measured
        error: Error message for failed or timed out attempts
        metadata: Extra details such as ``cached``
        id: Unique result identifier
    """
    task_id: uuid.UUID
    status: ResultStatus
    output: Any = None
    completed_at: datetime = field(default_factory=utc_now)
    execution_time: float | None = None
    error: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def is_completed(self) -> bool:
        return self.status == ResultStatus.COMPLETED


# ==================== agent state types ====================


class AgentStatus(Enum):
    """Lifecycle status of an agent."""
    IDLE = auto()
    INITIALIZING = auto()
    BUSY = auto()
    ERROR = auto()
    SHUTTING_DOWN = auto()
    TERMINATED = auto()


@dataclass(frozen=True)
class AgentState:
    """Current lifecycle state of an agent.

    ``task_id`` is only set for BUSY and ``reason`` only for ERROR.
    """
    status: AgentStatus
    task_id: uuid.UUID | None = None
    reason: str | None = None

    @classmethod
    def idle(cls) -> "AgentState":
        return cls(AgentStatus.IDLE)

    @classmethod
    def initializing(cls) -> "AgentState":
        return cls(AgentStatus.INITIALIZING)

    @classmethod
    def busy(cls, task_id: uuid.UUID) -> "AgentState":
        return cls(AgentStatus.BUSY, task_id=task_id)

    @classmethod
    def error(cls, reason: str) -> "AgentState":
        return cls(AgentStatus.ERROR, reason=reason)

    @classmethod
    def shutting_down(cls) -> "AgentState":
        return cls(AgentStatus.SHUTTING_DOWN)

    @classmethod
    def terminated(cls) -> "AgentState":
        return cls(AgentStatus.TERMINATED)

    def __str__(self) -> str:
        if self.status == AgentStatus.BUSY:
            return f"busy (task: {self.task_id})"
        if self.status == AgentStatus.ERROR:
            return f"error: {self.reason}"
        return self.status.name.lower()


@dataclass(frozen=True)
class InitResult:
    """Outcome of ``initialize()`` or ``shutdown()``."""
    success: bool
    message: str | None = None

    @classmethod
    def ok(cls) -> "InitResult":
        return cls(True)

    @classmethod
    def failure(cls, message: str) -> "InitResult":
        return cls(False, message)


@dataclass(frozen=True)
class ProcessOutput:
    """What a task processor hands back to its agent.

    Attributes:
        output: The produced payload
        metadata: Details copied into the task result (model, cached, ...)
    """
    output: Any
    metadata: Mapping[str, Any] = field(default_factory=dict, hash=False)


# called with (status, progress) while a task runs
ProgressCallback = Callable[[str, float], None]


# ==================== backend types ====================


@dataclass(frozen=True)
class ModelDescriptor:
    """A model advertised by a backend catalog.

    Attributes:
        name: Model identifier (for example ``llama3:8b``)
        size: Size on disk in bytes, if known
        owned_by: Publisher reported by the backend
        created_at: Creation time reported by the backend
    """
    name: str
    size: int | None = None
    owned_by: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class GenerationParams:
    """Sampling parameters for a single completion request."""
    model: str
    temperature: float
    max_tokens: int = 512
    top_p: float = 0.9
    stop: tuple[str, ...] = ()

    def to_api_args(self) -> dict[str, Any]:
        """Convert to keyword arguments for an OpenAI-compatible API call."""
        args: dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "top_p": self.top_p,
        }
        if self.stop:
            args["stop"] = list(self.stop)
        return args


def capability_values(capabilities: Iterable[Capability]) -> list[str]:
    """Sorted string values of a capability collection, for logs and keys."""
    return sorted(cap.value for cap in capabilities)

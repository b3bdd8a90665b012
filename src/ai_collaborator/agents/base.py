"""Agent and task-processor interfaces.

An ``Agent`` is anything the dispatcher can hand a task to. A
``TaskProcessor`` is the work body an agent delegates to (usually a model
adapter); the agent owns lifecycle state and bookkeeping around it.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

from ..capabilities import Capability
from ..config import AgentConfiguration
from ..types import AgentState, InitResult, ProcessOutput, ProgressCallback, Task, TaskResult


class Agent(ABC):
    """Abstract base class for all agents.

    Each agent is responsible for:
    1. Advertising the capabilities it supports
    2. Reporting its lifecycle state
    3. Processing tasks and returning their results
    """

    name: str = "agent"

    @abstractmethod
    async def initialize(self, config: AgentConfiguration | None = None) -> InitResult:
        """Prepare the agent to accept tasks."""

    @abstractmethod
    async def process_task(self, task: Task) -> TaskResult:
        """Process a task and return its result.

        Raises:
            CapabilityNotSupportedError: If the agent lacks a required capability.
        """

    @abstractmethod
    async def shutdown(self) -> InitResult:
        """Release resources; the agent accepts no further tasks."""

    @abstractmethod
    def provide_capabilities(self) -> frozenset[Capability]:
        """Return the capabilities the agent currently advertises."""

    @abstractmethod
    def get_state(self) -> AgentState:
        """Return the current lifecycle state."""


class TaskProcessor(ABC):
    """The work body an agent runs for each accepted task."""

    @abstractmethod
    def capabilities(self) -> frozenset[Capability]:
        """Return the capabilities this processor can serve."""

    @abstractmethod
    async def run(self, task: Task, on_progress: ProgressCallback | None = None) -> ProcessOutput:
        """Do the work for a task.

        Args:
            task: The accepted task
            on_progress: Optional callback receiving (status, progress) updates
        """

    async def prepare(self, config: AgentConfiguration) -> None:
        """Apply agent configuration. Called from ``Agent.initialize``."""
        return None

    async def close(self) -> None:
        """Release resources. Called from ``Agent.shutdown``."""
        return None


class DelegatingAgent(Agent):
    """Agent that forwards every call to a wrapped agent.

    Individual behaviors can be replaced by passing callables, which is how
    tests and callers specialize an agent without subclassing it.
    """

    def __init__(
        self,
        inner: Agent,
        process: Callable[[Task], Awaitable[TaskResult]] | None = None,
        capabilities: frozenset[Capability] | None = None,
    ):
        """Initialize the wrapper.

        Args:
            inner: The agent to delegate to
            process: Replacement for ``process_task``
            capabilities: Replacement capability set
        """
        self.inner = inner
        self.name = inner.name
        self._process = process
        self._capabilities = capabilities

    async def initialize(self, config: AgentConfiguration | None = None) -> InitResult:
        return await self.inner.initialize(config)

    async def process_task(self, task: Task) -> TaskResult:
        if self._process is not None:
            return await self._process(task)
        return await self.inner.process_task(task)

    async def shutdown(self) -> InitResult:
        return await self.inner.shutdown()

    def provide_capabilities(self) -> frozenset[Capability]:
        if self._capabilities is not None:
            return self._capabilities
        return self.inner.provide_capabilities()

    def get_state(self) -> AgentState:
        return self.inner.get_state()

"""Agent with a managed lifecycle.

``ManagedAgent`` wraps a task processor with the bookkeeping every agent
needs: the lifecycle state machine, the bounded result history and the
progress monitors. State, history and monitors are only changed while
holding the agent's lock; the processing itself runs outside it, so the
busy windows of separate tasks may overlap.
"""

import asyncio
import functools
import time
import uuid
from typing import Callable

from ..capabilities import Capability, missing_capabilities
from ..config import AgentConfiguration
from ..core.history import TaskHistory
from ..core.progress import ProgressRegistry, ProgressSnapshot, estimate_duration
from ..exceptions import AgentUnavailableError, CapabilityNotSupportedError, TaskTimeoutError
from ..logging import get_agent_logger
from ..types import (
    AgentState,
    AgentStatus,
    InitResult,
    ResultStatus,
    Task,
    TaskResult,
)
from .base import Agent, TaskProcessor

StateListener = Callable[[AgentState], None]

# states from which process_task is accepted
_ACCEPTING = frozenset({AgentStatus.IDLE, AgentStatus.BUSY, AgentStatus.ERROR})
# states only initialize and shutdown may leave
_LIFECYCLE_OWNED = frozenset(
    {AgentStatus.INITIALIZING, AgentStatus.SHUTTING_DOWN, AgentStatus.TERMINATED}
)


class ManagedAgent(Agent):
    """Agent that delegates work to a ``TaskProcessor``.

    Lifecycle:
        idle -> initializing -> idle | error
        idle | busy | error -> busy(task) -> idle | error
        idle | error -> shutting_down -> terminated

    Every accepted task ends with exactly one result in the history,
    whether it completed, failed or timed out.
    """

    def __init__(
        self,
        processor: TaskProcessor,
        name: str = "managed-agent",
        version: str = "1.0.0",
        description: str = "",
        capabilities: frozenset[Capability] | None = None,
        max_task_history_items: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the agent.

        Args:
            processor: The work body tasks are delegated to
            name: Display name used in logs and errors
            version: Agent version string
            description: What the agent is for
            capabilities: Fixed capability set; defaults to the processor's
            max_task_history_items: Bound of the result history
            clock: Time source for progress monitors
        """
        self.processor = processor
        self.name = name
        self.version = version
        self.description = description
        self.agent_id = uuid.uuid4()
        self._log = get_agent_logger(__name__, name)

        self._capabilities = frozenset(capabilities) if capabilities is not None else None
        self._state = AgentState.idle()
        self._lock = asyncio.Lock()
        self._history = TaskHistory(max_task_history_items)
        self._progress = ProgressRegistry(clock)
        self._in_flight: list[uuid.UUID] = []
        self._listeners: list[StateListener] = []

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, state={self._state})"

    # ==================== state ====================

    def get_state(self) -> AgentState:
        return self._state

    def provide_capabilities(self) -> frozenset[Capability]:
        if self._capabilities is not None:
            return self._capabilities
        return self.processor.capabilities()

    def add_state_listener(self, listener: StateListener) -> None:
        """Register a callback that receives every state transition, in order."""
        self._listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _transition(self, new_state: AgentState) -> None:
        # caller holds the lock
        old_state = self._state
        self._state = new_state
        self._log.info(f"{old_state} -> {new_state}")
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception:
                self._log.exception("state listener failed")

    # ==================== lifecycle ====================

    async def initialize(self, config: AgentConfiguration | None = None) -> InitResult:
        """Apply configuration and prepare the processor.

        Refused while any task is in flight.

        Returns:
            InitResult.ok() on success. On failure the agent moves to
            ``error(reason)`` and the failure message is returned.
        """
        async with self._lock:
            if self._state.status not in (AgentStatus.IDLE, AgentStatus.ERROR):
                return InitResult.failure(f"cannot initialize while {self._state}")
            if self._in_flight:
                return InitResult.failure(
                    f"cannot initialize with {len(self._in_flight)} task(s) in flight"
                )
            self._transition(AgentState.initializing())

        try:
            if config is not None:
                self._history.resize(config.max_task_history_items)
                await self.processor.prepare(config)
        except Exception as e:
            self._log.error(f"initialization failed: {e}")
            async with self._lock:
                self._transition(AgentState.error(str(e)))
            return InitResult.failure(str(e))

        async with self._lock:
            self._transition(AgentState.idle())
        return InitResult.ok()

    async def shutdown(self) -> InitResult:
        """Close the processor and move to ``terminated``.

        Only allowed from ``idle`` or ``error`` with no task in flight.
        """
        async with self._lock:
            if self._state.status not in (AgentStatus.IDLE, AgentStatus.ERROR):
                return InitResult.failure(f"cannot shut down while {self._state}")
            if self._in_flight:
                return InitResult.failure(
                    f"cannot shut down with {len(self._in_flight)} task(s) in flight"
                )
            self._transition(AgentState.shutting_down())

        message = None
        try:
            await self.processor.close()
        except Exception as e:
            self._log.error(f"cleanup failed: {e}")
            message = str(e)

        async with self._lock:
            self._progress.clear()
            self._transition(AgentState.terminated())
        return InitResult.failure(message) if message else InitResult.ok()

    # ==================== processing ====================

    async def process_task(self, task: Task) -> TaskResult:
        """Run a task through the processor and record its result.

        Raises:
            CapabilityNotSupportedError: If a required capability is missing.
                Nothing is recorded and the state does not change.
            AgentUnavailableError: If the agent is initializing, shutting
                down or terminated.
            TaskTimeoutError: If processing exceeds ``task.timeout``.
            Exception: Any processing failure, after it has been recorded.
        """
        missing = missing_capabilities(task.required_capabilities, self.provide_capabilities())
        if missing:
            raise CapabilityNotSupportedError(missing[0])

        async with self._lock:
            if self._state.status not in _ACCEPTING:
                raise AgentUnavailableError(self.name, str(self._state))
            self._in_flight.append(task.id)
            auto_monitor = task.id not in self._progress
            if auto_monitor:
                self._progress.enable(task.id, estimate_duration(task))
            self._transition(AgentState.busy(task.id))

        on_progress = functools.partial(self.update_progress, task.id)
        started = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(
                self.processor.run(task, on_progress=on_progress),
                timeout=task.timeout,
            )
        except asyncio.TimeoutError:
            reason = f"task {task.id} timed out after {task.timeout}s"
            await self._finish(
                task,
                TaskResult(
                    task_id=task.id,
                    status=ResultStatus.TIMED_OUT,
                    execution_time=time.perf_counter() - started,
                    error=reason,
                ),
                auto_monitor,
                AgentState.error(reason),
            )
            raise TaskTimeoutError(str(task.id), task.timeout) from None
        except asyncio.CancelledError:
            await self._record_failure(task, "cancelled", started, auto_monitor)
            raise
        except Exception as e:
            await self._record_failure(task, str(e) or e.__class__.__name__, started, auto_monitor)
            raise

        self.update_progress(task.id, "Completed", 1.0)
        result = TaskResult(
            task_id=task.id,
            status=ResultStatus.COMPLETED,
            output=outcome.output,
            execution_time=time.perf_counter() - started,
            metadata=dict(outcome.metadata),
        )
        await self._finish(task, result, auto_monitor)
        return result

    async def _record_failure(
        self,
        task: Task,
        reason: str,
        started: float,
        auto_monitor: bool,
    ) -> None:
        self._log.error(f"task {task.id} failed: {reason}")
        result = TaskResult(
            task_id=task.id,
            status=ResultStatus.FAILED,
            execution_time=time.perf_counter() - started,
            error=reason,
        )
        await self._finish(task, result, auto_monitor, AgentState.error(reason))

    async def _finish(
        self,
        task: Task,
        result: TaskResult,
        auto_monitor: bool,
        next_state: AgentState | None = None,
    ) -> None:
        async with self._lock:
            self._in_flight.remove(task.id)
            for evicted in self._history.record(result):
                self._log.debug(f"evicted result for task {evicted.task_id}")
            if auto_monitor:
                self._progress.remove(task.id)

            if self._state.status in _LIFECYCLE_OWNED:
                return
            if next_state is None:
                next_state = (
                    AgentState.busy(self._in_flight[-1]) if self._in_flight else AgentState.idle()
                )
            self._transition(next_state)

    # ==================== history ====================

    @property
    def history(self) -> list[TaskResult]:
        """Recorded results, oldest first."""
        return self._history.results()

    def get_result(self, task_id: uuid.UUID) -> TaskResult | None:
        return self._history.get(task_id)

    @property
    def max_task_history_items(self) -> int:
        return self._history.max_items

    # ==================== progress ====================

    def enable_progress_monitoring(self, task_id: uuid.UUID, expected_duration: float) -> None:
        """Start monitoring a task. The monitor lives until shutdown."""
        self._progress.enable(task_id, expected_duration)

    def update_progress(self, task_id: uuid.UUID, status: str, progress: float) -> None:
        """Update a task's progress, clamped to [0, 1]. Unknown ids are ignored."""
        self._progress.update(task_id, status, progress)

    def get_progress(self, task_id: uuid.UUID) -> ProgressSnapshot | None:
        return self._progress.get(task_id)

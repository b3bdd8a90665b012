"""Progress monitoring for long-running tasks.

Monitors are advisory: updating an unknown task id is silently ignored.
"""

import time
import uuid
from dataclasses import dataclass
from typing import Callable

from ..capabilities import Capability
from ..types import Task, TaskPriority

_BASE_DURATIONS: dict[TaskPriority, float] = {
    TaskPriority.CRITICAL: 5.0,
    TaskPriority.HIGH: 10.0,
    TaskPriority.NORMAL: 15.0,
    TaskPriority.LOW: 20.0,
}


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of a task's progress.

    Attributes:
        task_id: The monitored task
        status: Latest status message
        progress: Completion fraction in [0.0, 1.0]
        elapsed: Seconds since monitoring started
        estimated_remaining: Estimated seconds until completion
    """
    task_id: uuid.UUID
    status: str
    progress: float
    elapsed: float
    estimated_remaining: float


class ProgressMonitor:
    """Tracks status and completion fraction for one task."""

    def __init__(
        self,
        task_id: uuid.UUID,
        expected_duration: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.task_id = task_id
        self.expected_duration = expected_duration
        self._clock = clock
        self.started_at = clock()
        self.updated_at = self.started_at
        self.status = "Starting"
        self.progress = 0.0

    @property
    def elapsed(self) -> float:
        return self._clock() - self.started_at

    @property
    def estimated_remaining(self) -> float:
        if self.progress >= 0.99:
            return 0.0
        elapsed = self.elapsed
        if self.progress > 0.05:
            return elapsed * (1.0 - self.progress) / self.progress
        # too little progress to extrapolate from
        return max(0.0, self.expected_duration - elapsed)

    def update(self, status: str, progress: float) -> None:
        self.status = status
        self.progress = min(1.0, max(0.0, progress))
        self.updated_at = self._clock()

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            task_id=self.task_id,
            status=self.status,
            progress=self.progress,
            elapsed=self.elapsed,
            estimated_remaining=self.estimated_remaining,
        )


class ProgressRegistry:
    """Per-agent registry of progress monitors keyed by task id."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._monitors: dict[uuid.UUID, ProgressMonitor] = {}

    def enable(self, task_id: uuid.UUID, expected_duration: float) -> ProgressMonitor:
        monitor = ProgressMonitor(task_id, expected_duration, clock=self._clock)
        self._monitors[task_id] = monitor
        return monitor

    def update(self, task_id: uuid.UUID, status: str, progress: float) -> None:
        monitor = self._monitors.get(task_id)
        if monitor is not None:
            monitor.update(status, progress)

    def get(self, task_id: uuid.UUID) -> ProgressSnapshot | None:
        monitor = self._monitors.get(task_id)
        return monitor.snapshot() if monitor else None

    def remove(self, task_id: uuid.UUID) -> None:
        self._monitors.pop(task_id, None)

    def clear(self) -> None:
        self._monitors.clear()

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._monitors


def estimate_duration(task: Task) -> float:
    """Estimate how long a task should take, in seconds.

    Starts from a per-priority baseline, scaled up for code generation and
    text analysis and for long queries.
    """
    duration = _BASE_DURATIONS[task.priority]
    if Capability.CODE_GENERATION in task.required_capabilities:
        duration *= 1.5
    if Capability.TEXT_ANALYSIS in task.required_capabilities:
        duration *= 1.2
    length_factor = 1.0 + min(len(task.query), 1000) / 1000.0
    return duration * length_factor

"""Bounded task-history ledger.

Each agent keeps the results of its most recently completed tasks, keyed by
task id. When the ledger is full the entries with the oldest ``completed_at``
are evicted first; equal timestamps fall back to insertion order.
"""

import itertools
import uuid

from ..types import TaskResult


class TaskHistory:
    """Result ledger holding at most ``max_items`` entries."""

    def __init__(self, max_items: int = 50):
        if max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {max_items}")
        self.max_items = max_items
        self._entries: dict[uuid.UUID, tuple[int, TaskResult]] = {}
        self._sequence = itertools.count()

    def record(self, result: TaskResult) -> list[TaskResult]:
        """Add a result, replacing any earlier result for the same task.

        Returns:
            The results evicted to stay within the bound.
        """
        self._entries.pop(result.task_id, None)
        self._entries[result.task_id] = (next(self._sequence), result)
        return self._prune()

    def get(self, task_id: uuid.UUID) -> TaskResult | None:
        entry = self._entries.get(task_id)
        return entry[1] if entry else None

    def results(self) -> list[TaskResult]:
        """All results, oldest first."""
        return [result for _, result in sorted(self._entries.values(), key=self._age_key)]

    def clear(self) -> None:
        self._entries.clear()

    def resize(self, max_items: int) -> list[TaskResult]:
        """Change the bound, evicting entries if it shrank."""
        if max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {max_items}")
        self.max_items = max_items
        return self._prune()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._entries

    def _prune(self) -> list[TaskResult]:
        overflow = len(self._entries) - self.max_items
        if overflow <= 0:
            return []
        oldest = sorted(self._entries.values(), key=self._age_key)[:overflow]
        for _, result in oldest:
            del self._entries[result.task_id]
        return [result for _, result in oldest]

    @staticmethod
    def _age_key(entry: tuple[int, TaskResult]):
        sequence, result = entry
        return (result.completed_at, sequence)

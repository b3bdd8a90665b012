"""Core bookkeeping components.

This module provides the building blocks agents and adapters are made of:
- TaskHistory: Bounded ledger of task results
- ProgressRegistry: Per-task progress monitors
- ResponseCache: TTL cache of model outputs
- StreamAggregator: Joins streamed fragments into the final text
- PromptBuilder: Shapes the prompt sent for a task
"""

from .cache import CacheEntry, ResponseCache, fingerprint
from .history import TaskHistory
from .progress import ProgressMonitor, ProgressRegistry, ProgressSnapshot, estimate_duration
from .prompt_builder import PromptBuilder
from .stream import StreamAggregator

__all__ = [
    "CacheEntry",
    "ProgressMonitor",
    "ProgressRegistry",
    "ProgressSnapshot",
    "PromptBuilder",
    "ResponseCache",
    "StreamAggregator",
    "TaskHistory",
    "estimate_duration",
    "fingerprint",
]

"""Agents: the units the dispatcher hands tasks to."""

from .base import Agent, DelegatingAgent, TaskProcessor
from .managed import ManagedAgent

__all__ = ["Agent", "DelegatingAgent", "ManagedAgent", "TaskProcessor"]

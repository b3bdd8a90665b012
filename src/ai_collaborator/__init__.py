"""AI Collaborator - capability-based dispatch of tasks to model-backed agents.

This package routes tasks to agents by the capabilities they advertise,
tracks each agent's lifecycle and history, and adapts requests to the
model family behind an agent.
"""

from .adapters import ModelAdapter
from .agents import Agent, DelegatingAgent, ManagedAgent, TaskProcessor
from .capabilities import Capability, is_supported
from .config import AgentConfiguration
from .dispatcher import Dispatcher, fewest_extra_capabilities, first_match
from .exceptions import (
    AgentError,
    AgentUnavailableError,
    BackendError,
    CapabilityNotSupportedError,
    ClientError,
    InvalidConfigurationError,
    ModelNotFoundError,
    NoCapableAgentError,
    TaskTimeoutError,
)
from .families import FamilyKind, ModelFamily
from .types import (
    AgentState,
    AgentStatus,
    InitResult,
    ProcessOutput,
    ResultStatus,
    Task,
    TaskPriority,
    TaskResult,
)

__version__ = "0.1.0"

__all__ = [
    # dispatch and agents
    "Dispatcher",
    "Agent",
    "DelegatingAgent",
    "ManagedAgent",
    "TaskProcessor",
    "ModelAdapter",
    "first_match",
    "fewest_extra_capabilities",
    # types
    "AgentConfiguration",
    "AgentState",
    "AgentStatus",
    "Capability",
    "FamilyKind",
    "InitResult",
    "ModelFamily",
    "ProcessOutput",
    "ResultStatus",
    "Task",
    "TaskPriority",
    "TaskResult",
    "is_supported",
    # exceptions
    "AgentError",
    "AgentUnavailableError",
    "BackendError",
    "CapabilityNotSupportedError",
    "ClientError",
    "InvalidConfigurationError",
    "ModelNotFoundError",
    "NoCapableAgentError",
    "TaskTimeoutError",
]

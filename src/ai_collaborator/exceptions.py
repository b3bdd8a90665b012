"""Custom exception hierarchy for the agent execution engine.

This module defines all custom exceptions used throughout the package,
organized into logical categories: task/dispatch errors, configuration
errors, and client (backend) errors.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .capabilities import Capability


class AgentError(Exception):
    """Base exception for all engine errors."""


# =============================================================================
# Task Errors - Issues with accepting or running a task
# =============================================================================

class TaskError(AgentError):
    """Base class for task processing errors."""


class InvalidTaskError(TaskError):
    """Task could not be constructed from the given parameters."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid task: {detail}")


class CapabilityNotSupportedError(TaskError):
    """Agent lacks a capability the task requires.

    Attributes:
        capability: The first missing capability
    """

    def __init__(self, capability: "Capability"):
        self.capability = capability
        super().__init__(f"Capability not supported: {capability.value}")


class NoCapableAgentError(TaskError):
    """No registered agent advertises every capability the task requires."""

    def __init__(self, task_id: str, required: list[str] | None = None):
        self.task_id = task_id
        self.required = required or []
        message = f"No capable agent found for task {task_id}"
        if self.required:
            message = f"{message} (requires: {', '.join(self.required)})"
        super().__init__(message)


class AgentUnavailableError(TaskError):
    """Agent is in a state that does not accept new tasks."""

    def __init__(self, agent_name: str, state: str):
        self.agent_name = agent_name
        self.state = state
        super().__init__(f"Agent '{agent_name}' cannot accept tasks while {state}")


class TaskTimeoutError(TaskError):
    """Task processing did not finish before the task timeout."""

    def __init__(self, task_id: str, timeout: float):
        self.task_id = task_id
        self.timeout = timeout
        super().__init__(f"Task {task_id} timed out after {timeout}s")


# =============================================================================
# Configuration Errors
# =============================================================================

class InvalidConfigurationError(AgentError):
    """Agent or adapter configuration is invalid."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Invalid configuration: {detail}")


class NoModelSelectedError(InvalidConfigurationError):
    """A model-backed operation was attempted before any model was selected."""

    def __init__(self):
        super().__init__("no model selected; call select_model() before processing tasks")


# =============================================================================
# Client Errors - Issues with the completion backend
# =============================================================================

class ClientError(AgentError):
    """Base class for completion backend errors."""


# the error kind callers see for opaque backend failures
BackendError = ClientError


class AuthenticationError(ClientError):
    """API key is invalid or missing."""


class RateLimitError(ClientError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: float | None = None):
        self.retry_after = retry_after
        if retry_after:
            message = f"{message}. Retry after: {retry_after}s"
        super().__init__(message)


class ModelNotFoundError(ClientError):
    """Requested model does not exist in the backend catalog."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        super().__init__(f"Model not found: {model_name}")


class ProviderUnavailableError(ClientError):
    """Backend is temporarily unavailable."""


class InvalidResponseError(ClientError):
    """Response from the backend could not be parsed."""

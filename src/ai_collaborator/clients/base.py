"""Base class for completion backends.

A backend is the only place the engine touches a model server. It exposes
single-shot completion, streamed completion, and a model catalog used to
validate model selection.
"""

import asyncio
import functools
import random
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from ..exceptions import ModelNotFoundError, ProviderUnavailableError, RateLimitError
from ..logging import get_logger
from ..types import GenerationParams, ModelDescriptor

logger = get_logger(__name__)

T = TypeVar("T")


def with_retry(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator for retrying async backend calls with exponential backoff.

    Retries on RateLimitError and ProviderUnavailableError. Other exceptions
    are raised immediately.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        initial_delay: Initial delay in seconds between retries (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)
        exponential_base: Base for exponential backoff (default: 2.0)
        jitter: Whether to add random jitter to delay (default: True)

    Returns:
        Decorated coroutine function with retry logic.

    Example:
        @with_retry(max_retries=3, initial_delay=1.0)
        async def list_models(self):
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            delay = initial_delay

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except (RateLimitError, ProviderUnavailableError) as e:
                    if attempt == max_retries:
                        logger.warning(
                            f"max retries ({max_retries}) exceeded for {func.__name__}: {e}"
                        )
                        raise

                    actual_delay = min(delay, max_delay)
                    if jitter:
                        actual_delay *= (0.5 + random.random())

                    logger.info(
                        f"retry {attempt + 1}/{max_retries} for {func.__name__} "
                        f"after {actual_delay:.1f}s: {e}"
                    )
                    await asyncio.sleep(actual_delay)
                    delay *= exponential_base

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper
    return decorator


class CompletionBackend(ABC):
    """Abstract base class for all completion backends.

    Each backend is responsible for:
    1. Listing the models it can serve
    2. Validating and activating a model
    3. Producing a completion, either whole or as a stream of text fragments

    Backend failures are raised as ``ClientError`` subclasses.
    """

    supports_streaming: bool = True

    def __init__(self, model: str | None = None):
        """Initialize the backend.

        Args:
            model: Optional model to treat as active without validation.
        """
        self.model = model

    @abstractmethod
    async def list_models(self) -> list[ModelDescriptor]:
        """Return the models the backend can serve."""

    @abstractmethod
    async def complete(self, prompt: str, params: GenerationParams) -> str:
        """Generate a full completion for a prompt.

        Args:
            prompt: The prompt text
            params: Sampling parameters, including the model to use

        Returns:
            The generated text
        """

    @abstractmethod
    def stream(self, prompt: str, params: GenerationParams) -> AsyncIterator[str]:
        """Generate a completion as a lazy, in-order sequence of text fragments.

        Args:
            prompt: The prompt text
            params: Sampling parameters, including the model to use

        Returns:
            Async iterator of text fragments
        """

    async def select_model(self, name: str) -> None:
        """Validate ``name`` against the catalog and make it the active model.

        Raises:
            ModelNotFoundError: If the catalog does not list the model.
        """
        models = await self.list_models()
        if not any(model.name == name for model in models):
            raise ModelNotFoundError(name)
        self.model = name
        logger.info(f"{self.__class__.__name__} selected model: {name}")

    async def close(self) -> None:
        """Release network resources held by the backend."""
        return None

"""Base class for OpenAI-compatible completion backends.

This class provides shared implementation for servers that speak the
OpenAI chat-completions API (OpenAI itself, and Ollama's ``/v1`` endpoint).
"""

from abc import abstractmethod
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, AsyncIterator

from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    InternalServerError,
    NotFoundError,
)
from openai import AuthenticationError as OpenAIAuthError
from openai import RateLimitError as OpenAIRateLimitError

from ..exceptions import (
    AuthenticationError,
    ClientError,
    InvalidResponseError,
    ModelNotFoundError,
    ProviderUnavailableError,
    RateLimitError,
)
from ..logging import get_logger
from ..types import GenerationParams, ModelDescriptor
from .base import CompletionBackend, with_retry

logger = get_logger(__name__)


class OpenAICompatibleBackend(CompletionBackend):
    """Base class for backends using the OpenAI-compatible API format.

    Subclasses must implement:
    - _create_client(): initialize the AsyncOpenAI client for the provider
    - provider_name: used in error messages
    """

    provider_name: str = "openai-compatible"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ):
        """Initialize the backend.

        Args:
            api_key: API key for the provider
            model: Model to treat as active
            base_url: Override for the API base url
        """
        super().__init__(model)
        self.base_url = base_url
        self.client = self._create_client(api_key)

    @abstractmethod
    def _create_client(self, api_key: str | None) -> AsyncOpenAI:
        """Create the provider's SDK client instance."""

    @contextmanager
    def _handle_api_errors(self, model: str | None = None):
        """Map SDK exceptions onto the engine's client errors."""
        try:
            yield
        except OpenAIAuthError as e:
            raise AuthenticationError(f"{self.provider_name} authentication failed: {e}") from e
        except OpenAIRateLimitError as e:
            raise RateLimitError(f"{self.provider_name} rate limit exceeded") from e
        except NotFoundError as e:
            raise ModelNotFoundError(model or "unknown") from e
        except InternalServerError as e:
            raise ProviderUnavailableError(f"{self.provider_name} server error: {e}") from e
        except APIConnectionError as e:
            raise ProviderUnavailableError(f"{self.provider_name} API unavailable: {e}") from e
        except APIStatusError as e:
            raise ClientError(f"{self.provider_name} request failed ({e.status_code}): {e}") from e

    # ==================== shared implementations ====================

    @with_retry(max_retries=2, initial_delay=0.5)
    async def list_models(self) -> list[ModelDescriptor]:
        with self._handle_api_errors():
            page = await self.client.models.list()
        logger.debug(f"{self.provider_name} catalog lists {len(page.data)} models")
        return [self._parse_model(entry) for entry in page.data]

    @with_retry(max_retries=2, initial_delay=0.5)
    async def complete(self, prompt: str, params: GenerationParams) -> str:
        with self._handle_api_errors(params.model):
            response = await self.client.chat.completions.create(
                messages=self._build_messages(prompt),
                stream=False,
                **params.to_api_args(),
            )
        return self._parse_response(response)

    async def stream(self, prompt: str, params: GenerationParams) -> AsyncIterator[str]:
        response = await self._open_stream(prompt, params)
        with self._handle_api_errors(params.model):
            async for chunk in response:
                fragment = self._parse_stream_chunk(chunk)
                if fragment:
                    yield fragment

    @with_retry(max_retries=2, initial_delay=0.5)
    async def _open_stream(self, prompt: str, params: GenerationParams) -> Any:
        with self._handle_api_errors(params.model):
            return await self.client.chat.completions.create(
                messages=self._build_messages(prompt),
                stream=True,
                **params.to_api_args(),
            )

    async def close(self) -> None:
        await self.client.close()

    def _build_messages(self, prompt: str) -> list[dict[str, str]]:
        return [{"role": "user", "content": prompt}]

    def _parse_model(self, entry: Any) -> ModelDescriptor:
        created = getattr(entry, "created", None)
        return ModelDescriptor(
            name=entry.id,
            owned_by=getattr(entry, "owned_by", None),
            created_at=datetime.fromtimestamp(created, UTC) if created else None,
        )

    def _parse_response(self, response: Any) -> str:
        """Extract the generated text from a chat completion."""
        try:
            return response.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            raise InvalidResponseError(
                f"Failed to parse {self.__class__.__name__} response: {e}"
            ) from e

    def _parse_stream_chunk(self, chunk: Any) -> str | None:
        """Extract the text delta from a streamed chunk, if any."""
        choice = chunk.choices[0] if chunk.choices else None
        if not choice:
            return None
        return getattr(choice.delta, "content", None)

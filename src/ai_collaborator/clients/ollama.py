"""Ollama backend implementation.

Ollama serves an OpenAI-compatible API under ``/v1``; this backend talks to
it through the OpenAI SDK and normalizes the catalog to ``ModelDescriptor``.
"""

from openai import AsyncOpenAI

from .openai_compat import OpenAICompatibleBackend

DEFAULT_OLLAMA_URL = "http://localhost:11434/v1"


class OllamaBackend(OpenAICompatibleBackend):
    """Backend for a local or remote Ollama server."""

    provider_name = "Ollama"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """Initialize the Ollama backend.

        Args:
            api_key: Only needed when Ollama sits behind an authenticating proxy.
            model: Model to treat as active.
            base_url: Server url. Defaults to http://localhost:11434/v1.
            timeout: Per-request timeout in seconds.
        """
        self.timeout = timeout
        super().__init__(api_key, model, base_url or DEFAULT_OLLAMA_URL)

    def _create_client(self, api_key: str | None) -> AsyncOpenAI:
        # the SDK insists on a key; Ollama ignores it
        return AsyncOpenAI(
            api_key=api_key or "ollama",
            base_url=self.base_url,
            timeout=self.timeout,
        )

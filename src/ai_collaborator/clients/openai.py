"""OpenAI backend implementation."""

from openai import AsyncOpenAI

from .openai_compat import OpenAICompatibleBackend


class OpenAIBackend(OpenAICompatibleBackend):
    """OpenAI API backend."""

    provider_name = "OpenAI"

    def _create_client(self, api_key: str | None) -> AsyncOpenAI:
        """Create the OpenAI SDK client.

        The key must be passed in explicitly; the engine does not read the
        environment.
        """
        return AsyncOpenAI(api_key=api_key, base_url=self.base_url)

"""centralized configuration management using pydantic settings.

process-wide settings are loaded from environment variables and an optional
.env file. per-agent configuration is a validated pydantic model that is
passed to agents explicitly; the engine itself never reads the environment.
"""

from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import InvalidConfigurationError


class Settings(BaseSettings):
    """main settings class for the agent execution engine.

    attributes:
        ollama_base_url: base url of the ollama server
        ollama_api_key: optional api key for a proxied ollama server
        openai_api_key: api key for openai
        llm_provider: explicit provider selection (auto-detected if not set)
        llm_model: model to use (provider default if not set)
        log_level: logging level (DEBUG, INFO, WARNING, ERROR)
        cache_ttl_seconds: lifetime of cached responses
        max_cache_entries: maximum cached responses per adapter
        max_task_history_items: maximum results kept per agent
        default_task_timeout: timeout for tasks built by the cli
        verbose: print state transitions in the cli
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore extra env vars
    )

    # backend endpoints and keys
    ollama_base_url: str = Field(default="http://localhost:11434/v1", alias="OLLAMA_BASE_URL")
    ollama_api_key: str | None = Field(default=None, alias="OLLAMA_API_KEY")
    openai_api_key: str | None = None

    # llm configuration
    llm_provider: str | None = Field(default=None, alias="LLM_PROVIDER")
    llm_model: str | None = Field(default=None, alias="LLM_MODEL")

    # engine configuration
    log_level: str = Field(default="WARNING", alias="AI_COLLABORATOR_LOG_LEVEL")
    cache_ttl_seconds: float = Field(default=600.0, gt=0)
    max_cache_entries: int = Field(default=50, ge=1)
    max_task_history_items: int = Field(default=50, ge=1)
    default_task_timeout: float = Field(default=60.0, gt=0)
    verbose: bool = False

    def detect_provider(self) -> str:
        """pick the provider: explicit setting, then openai if keyed, else ollama."""
        if self.llm_provider:
            return self.llm_provider
        if self.openai_api_key:
            return "openai"
        return "ollama"

    def get_api_key_for_provider(self, provider: str) -> str | None:
        key_map = {
            "ollama": self.ollama_api_key,
            "openai": self.openai_api_key,
        }
        return key_map.get(provider)

    def agent_configuration(self, model_id: str | None = None) -> "AgentConfiguration":
        """build an agent configuration from the process-wide defaults."""
        return AgentConfiguration(
            model_id=model_id or self.llm_model,
            max_task_history_items=self.max_task_history_items,
            cache_ttl_seconds=self.cache_ttl_seconds,
            max_cache_entries=self.max_cache_entries,
        )


class AgentConfiguration(BaseModel):
    """per-agent configuration passed to ``Agent.initialize()``.

    a ``temperature`` set here is pinned: it overrides the model family's
    recommended temperature on every model selection.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    model_id: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    top_p: float = Field(default=0.9, gt=0.0, le=1.0)
    max_tokens: int = Field(default=512, ge=1)
    stream: bool = True
    max_task_history_items: int = Field(default=50, ge=1)
    cache_ttl_seconds: float = Field(default=600.0, gt=0)
    max_cache_entries: int = Field(default=50, ge=1)

    @classmethod
    def from_mapping(cls, data: dict) -> "AgentConfiguration":
        """validate a plain dict (for example from config.yaml).

        raises:
            InvalidConfigurationError: if any field fails validation
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidConfigurationError(str(e)) from e


@lru_cache
def get_settings() -> Settings:
    """get the singleton settings instance.

    call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()

"""Model adapter: turns tasks into completion requests.

The adapter owns the active model and everything derived from it (family,
advertised capabilities, sampling temperature), shapes prompts, caches
responses and aggregates streamed output. The backend is the only thing it
talks to.
"""

import time
from typing import Callable

from ..agents.base import TaskProcessor
from ..capabilities import Capability
from ..clients.base import CompletionBackend
from ..config import AgentConfiguration
from ..core.cache import ResponseCache, fingerprint
from ..core.prompt_builder import PromptBuilder
from ..core.stream import StreamAggregator
from ..exceptions import BackendError, ClientError, ModelNotFoundError, NoModelSelectedError
from ..families import ModelFamily, heuristic_memory_gb
from ..logging import get_logger
from ..types import GenerationParams, ModelDescriptor, ProcessOutput, ProgressCallback, Task

logger = get_logger(__name__)

_BYTES_PER_GB = 1024 ** 3
DEFAULT_AVAILABLE_MEMORY_GB = 16.0


class ModelAdapter(TaskProcessor):
    """Task processor backed by a completion backend.

    Selecting a model recomputes the family, the capability set and the
    temperature. A temperature passed to the constructor (or set through
    ``AgentConfiguration``) is pinned and wins over the family default.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int = 512,
        top_p: float = 0.9,
        stream: bool = True,
        cache_ttl: float = 600.0,
        max_cache_entries: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the adapter.

        Args:
            backend: The completion backend to call
            model: Model to activate without catalog validation
            temperature: Pinned temperature; None uses the family default
            max_tokens: Maximum tokens per completion
            top_p: Nucleus sampling parameter
            stream: Use the backend's streaming interface when it has one
            cache_ttl: Seconds a cached response stays valid
            max_cache_entries: Maximum number of cached responses
            clock: Time source for the cache (monotonic seconds)
        """
        self.backend = backend
        self.max_tokens = max_tokens
        self.top_p = top_p
        self.stream = stream
        self.prompt_builder = PromptBuilder()
        self.cache = ResponseCache(ttl=cache_ttl, max_entries=max_cache_entries, clock=clock)
        self.invocation_count = 0
        self._clock = clock

        self._pinned_temperature = temperature
        self._temperature = temperature
        self._model: str | None = None
        self._family: ModelFamily | None = None
        self._catalog: list[ModelDescriptor] | None = None

        if model:
            self._activate(model, temperature)

    # ==================== model selection ====================

    @property
    def active_model(self) -> str | None:
        return self._model

    @property
    def family(self) -> ModelFamily | None:
        return self._family

    @property
    def temperature(self) -> float | None:
        return self._temperature

    async def select_model(self, name: str, temperature: float | None = None) -> None:
        """Validate ``name`` with the backend and make it the active model.

        Args:
            name: Model identifier
            temperature: Temperature for this selection; falls back to the
                pinned temperature, then to the family recommendation

        Raises:
            ModelNotFoundError: If the backend rejects the model. The
                previously active model stays active.
        """
        try:
            await self.backend.select_model(name)
        except ModelNotFoundError:
            logger.warning(f"model '{name}' not found; keeping {self._model or 'no model'}")
            raise
        except ClientError:
            raise
        except Exception as e:
            raise BackendError(f"model selection failed: {e}") from e

        self._activate(name, temperature)

    def _activate(self, name: str, temperature: float | None = None) -> None:
        family = ModelFamily.from_model_name(name)
        if temperature is None:
            temperature = self._pinned_temperature
        if temperature is None:
            temperature = family.recommended_temperature

        self._model = name
        self._family = family
        self._temperature = temperature
        logger.info(f"active model: {name} (family: {family}, temperature: {temperature})")

    def capabilities(self) -> frozenset[Capability]:
        if self._family is None:
            return frozenset({Capability.BASIC_COMPLETION})
        return self._family.default_capabilities

    async def prepare(self, config: AgentConfiguration) -> None:
        """Apply an agent configuration and select its model, if any."""
        self.max_tokens = config.max_tokens
        self.top_p = config.top_p
        self.stream = config.stream
        self.cache = ResponseCache(
            ttl=config.cache_ttl_seconds,
            max_entries=config.max_cache_entries,
            clock=self._clock,
        )
        if config.temperature is not None:
            self._pinned_temperature = config.temperature
            self._temperature = config.temperature

        if config.model_id:
            await self.select_model(config.model_id)

    # ==================== request building ====================

    def optimize_prompt(self, task: Task) -> str:
        return self.prompt_builder.optimize(task)

    def build_params(self) -> GenerationParams:
        if self._model is None:
            raise NoModelSelectedError()
        return GenerationParams(
            model=self._model,
            temperature=self._temperature,
            max_tokens=self.max_tokens,
            top_p=self.top_p,
        )

    # ==================== processing ====================

    async def run(self, task: Task, on_progress: ProgressCallback | None = None) -> ProcessOutput:
        """Produce the model output for a task.

        A fresh cached response for the same prompt and parameters is returned
        without calling the backend.

        Raises:
            NoModelSelectedError: If no model is active.
            ClientError: Backend failures, unchanged.
            BackendError: Any other failure raised by the backend.
        """
        params = self.build_params()
        prompt = self.optimize_prompt(task)
        key = fingerprint(prompt, params)

        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"cache hit for task {task.id}")
            return ProcessOutput(output=cached, metadata={"model": params.model, "cached": True})

        if on_progress:
            on_progress("Generating response", 0.2)

        output = await self._invoke(prompt, params, on_progress)
        self.cache.put(key, output)
        return ProcessOutput(output=output, metadata={"model": params.model, "cached": False})

    async def _invoke(
        self,
        prompt: str,
        params: GenerationParams,
        on_progress: ProgressCallback | None,
    ) -> str:
        self.invocation_count += 1
        try:
            if self.stream and self.backend.supports_streaming:
                return await self._aggregate_stream(prompt, params, on_progress)
            return await self.backend.complete(prompt, params)
        except ClientError:
            raise
        except Exception as e:
            raise BackendError(f"completion failed: {e}") from e

    async def _aggregate_stream(
        self,
        prompt: str,
        params: GenerationParams,
        on_progress: ProgressCallback | None,
    ) -> str:
        received = 0

        def report(fragment: str, count: int) -> None:
            nonlocal received
            received += len(fragment)
            if on_progress:
                on_progress("Generating response", min(0.9, 0.3 + received / 1000.0))

        aggregator = StreamAggregator(on_fragment=report)
        return await aggregator.aggregate(self.backend.stream(prompt, params))

    # ==================== model utilities ====================

    async def list_models(self, force_refresh: bool = False) -> list[ModelDescriptor]:
        """Return the backend catalog, cached after the first call."""
        if self._catalog is None or force_refresh:
            self._catalog = await self.backend.list_models()
        return list(self._catalog)

    async def get_model_info(self, name: str) -> ModelDescriptor | None:
        for model in await self.list_models():
            if model.name == name:
                return model
        return None

    def describe_model_capabilities(self, name: str) -> str:
        """Human-readable summary of a model's family and capabilities."""
        family = ModelFamily.from_model_name(name)
        capabilities = ", ".join(sorted(cap.value for cap in family.default_capabilities))
        return (
            f"{name} ({family})\n"
            f"{family.describe()}\n"
            f"Capabilities: {capabilities}\n"
            f"Recommended temperature: {family.recommended_temperature}"
        )

    async def estimate_memory_requirements(self, name: str) -> float:
        """Estimate the RAM in GB needed to serve a model.

        Uses twice the catalog size when the backend reports one, otherwise a
        guess from the model name.
        """
        try:
            info = await self.get_model_info(name)
        except ClientError as e:
            logger.warning(f"could not read catalog for {name}: {e}")
            info = None
        if info is not None and info.size:
            return info.size / _BYTES_PER_GB * 2.0
        return heuristic_memory_gb(name)

    async def check_model_viability(
        self, name: str, available_gb: float = DEFAULT_AVAILABLE_MEMORY_GB
    ) -> tuple[bool, str | None]:
        """Check whether a model fits in the given amount of RAM.

        Returns:
            ``(True, None)`` when it fits, otherwise ``(False, reason)``.
        """
        required = await self.estimate_memory_requirements(name)
        if required > available_gb:
            return False, (
                f"Model requires approximately {required:.1f} GB of RAM, "
                f"but only {available_gb:.1f} GB is available"
            )
        return True, None

    async def close(self) -> None:
        self.cache.clear()
        await self.backend.close()

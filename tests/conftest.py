"""Shared test fixtures and configuration."""

import asyncio

import pytest

from ai_collaborator.adapters import ModelAdapter
from ai_collaborator.agents import ManagedAgent, TaskProcessor
from ai_collaborator.capabilities import Capability
from ai_collaborator.clients.base import CompletionBackend
from ai_collaborator.types import ModelDescriptor, ProcessOutput, Task


class FakeBackend(CompletionBackend):
    """Scripted completion backend that counts invocations."""

    def __init__(
        self,
        models=("llama3:8b", "codellama:7b", "mistral:7b"),
        response: str = "fake response",
        chunks: list[str] | None = None,
        model: str | None = None,
    ):
        super().__init__(model)
        self.models = [ModelDescriptor(name=name) for name in models]
        self.response = response
        self.chunks = chunks
        self.error: Exception | None = None
        self.fail_after: int | None = None
        self.delay = 0.0
        self.complete_calls = 0
        self.stream_calls = 0
        self.prompts: list[str] = []
        self.params = []
        self.closed = False

    @property
    def invocations(self) -> int:
        return self.complete_calls + self.stream_calls

    async def list_models(self):
        return list(self.models)

    async def complete(self, prompt, params):
        self.complete_calls += 1
        self.prompts.append(prompt)
        self.params.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response

    async def stream(self, prompt, params):
        self.stream_calls += 1
        self.prompts.append(prompt)
        self.params.append(params)
        if self.delay:
            await asyncio.sleep(self.delay)
        chunks = self.chunks if self.chunks is not None else [self.response]
        for index, chunk in enumerate(chunks):
            if self.error is not None and (self.fail_after is None or index == self.fail_after):
                raise self.error
            yield chunk
        if self.error is not None and self.fail_after is not None and self.fail_after >= len(chunks):
            raise self.error

    async def close(self):
        self.closed = True


class ScriptedProcessor(TaskProcessor):
    """Task processor with a fixed capability set and scripted behavior."""

    def __init__(self, capabilities=None, output="done", delay: float = 0.0):
        self._capabilities = frozenset(capabilities or {Capability.BASIC_COMPLETION})
        self.output = output
        self.delay = delay
        self.error: Exception | None = None
        self.runs: list[Task] = []
        self.prepared = None
        self.closed = False

    def capabilities(self):
        return self._capabilities

    async def run(self, task, on_progress=None):
        self.runs.append(task)
        if on_progress:
            on_progress("Working", 0.5)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ProcessOutput(output=self.output, metadata={"processor": "scripted"})

    async def prepare(self, config):
        self.prepared = config

    async def close(self):
        self.closed = True


def make_task(query="Hello", capabilities=None, **kwargs) -> Task:
    """Build a task with sensible defaults."""
    return Task(
        description=kwargs.pop("description", "test task"),
        query=query,
        required_capabilities=frozenset(capabilities or {Capability.BASIC_COMPLETION}),
        **kwargs,
    )


@pytest.fixture
def fake_backend():
    """Create a scripted completion backend."""
    return FakeBackend()


@pytest.fixture
def adapter(fake_backend):
    """Create a model adapter with llama3 active."""
    return ModelAdapter(fake_backend, model="llama3:8b")


@pytest.fixture
def processor():
    """Create a scripted processor advertising basic completion."""
    return ScriptedProcessor()


@pytest.fixture
def agent(processor):
    """Create a managed agent around the scripted processor."""
    return ManagedAgent(processor, name="test-agent")


@pytest.fixture
def basic_task():
    """Create a basic completion task."""
    return make_task("What is the capital of France?")


@pytest.fixture
def code_task():
    """Create a code generation task with a language hint."""
    return make_task(
        "Implement a factorial function",
        capabilities={Capability.CODE_GENERATION},
        context={"language": "swift"},
    )


@pytest.fixture
def conversation_task():
    """Create a conversational task with prior turns."""
    return make_task(
        "And what about Germany?",
        capabilities={Capability.CONVERSATIONAL},
        context={"conversationHistory": ["What is the capital of France?", "Paris."]},
    )

"""Capability registry.

Agents advertise a set of capabilities; tasks declare the capabilities they
need. Dispatch is plain set containment over the closed ``Capability`` enum.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable

from .exceptions import InvalidTaskError

if TYPE_CHECKING:
    from .families import ModelFamily
    from .types import Task


class Capability(str, Enum):
    """A discrete ability an agent may advertise."""
    BASIC_COMPLETION = "basic_completion"
    TEXT_GENERATION = "text_generation"
    CODE_GENERATION = "code_generation"
    CODE_COMPLETION = "code_completion"
    CODE_ANALYSIS = "code_analysis"
    CONVERSATIONAL = "conversational"
    TEXT_ANALYSIS = "text_analysis"
    SUMMARIZATION = "summarization"
    DATA_SUMMARIZATION = "data_summarization"
    TRANSLATION = "translation"
    QUESTION_ANSWERING = "question_answering"
    PLANNING = "planning"
    REASONING = "reasoning"
    DATA_ANALYSIS = "data_analysis"
    CONTEXT_RETRIEVAL = "context_retrieval"
    IMAGE_GENERATION = "image_generation"
    AUDIO_TRANSCRIPTION = "audio_transcription"
    MULTIMODAL = "multimodal"


CODE_CAPABILITIES = frozenset({Capability.CODE_GENERATION, Capability.CODE_COMPLETION})

_GENERAL_CHAT = frozenset({
    Capability.BASIC_COMPLETION,
    Capability.TEXT_ANALYSIS,
    Capability.CONVERSATIONAL,
    Capability.CONTEXT_RETRIEVAL,
    Capability.DATA_SUMMARIZATION,
})

# keyed by family kind value
_FAMILY_CAPABILITIES: dict[str, frozenset[Capability]] = {
    "llama": _GENERAL_CHAT,
    "mistral": _GENERAL_CHAT,
    "gemma": _GENERAL_CHAT,
    "mixtral": _GENERAL_CHAT,
    "codellama": frozenset({
        Capability.BASIC_COMPLETION,
        Capability.CODE_GENERATION,
        Capability.CODE_COMPLETION,
        Capability.TEXT_ANALYSIS,
    }),
    "phi": frozenset({
        Capability.BASIC_COMPLETION,
        Capability.TEXT_ANALYSIS,
        Capability.CODE_GENERATION,
    }),
    "stable": frozenset({Capability.IMAGE_GENERATION, Capability.MULTIMODAL}),
}

_DESCRIPTIONS: dict[Capability, str] = {
    Capability.BASIC_COMPLETION: "Complete a prompt with free-form text",
    Capability.TEXT_GENERATION: "Generate long-form text",
    Capability.CODE_GENERATION: "Generate code in various programming languages",
    Capability.CODE_COMPLETION: "Complete partially written code",
    Capability.CODE_ANALYSIS: "Analyze code for issues, patterns, or improvements",
    Capability.CONVERSATIONAL: "Hold a multi-turn conversation",
    Capability.TEXT_ANALYSIS: "Process and analyze text content",
    Capability.SUMMARIZATION: "Summarize documents",
    Capability.DATA_SUMMARIZATION: "Summarize structured data",
    Capability.TRANSLATION: "Translate between natural languages",
    Capability.QUESTION_ANSWERING: "Answer questions",
    Capability.PLANNING: "Break goals into ordered steps",
    Capability.REASONING: "Solve problems through multi-step reasoning",
    Capability.DATA_ANALYSIS: "Analyze and transform structured data",
    Capability.CONTEXT_RETRIEVAL: "Use retrieved context to answer",
    Capability.IMAGE_GENERATION: "Generate images",
    Capability.AUDIO_TRANSCRIPTION: "Transcribe audio",
    Capability.MULTIMODAL: "Accept mixed text and image input",
}


def _capabilities_of(agent: Any) -> frozenset[Capability]:
    if hasattr(agent, "provide_capabilities"):
        return frozenset(agent.provide_capabilities())
    return frozenset(agent)


def is_supported(task: "Task", agent: Any) -> bool:
    """Check whether an agent can take a task.

    Args:
        task: The task to check.
        agent: An agent (anything with ``provide_capabilities()``) or an
               iterable of capabilities.

    Returns:
        True if every required capability is advertised by the agent.
    """
    return task.required_capabilities <= _capabilities_of(agent)


def missing_capabilities(
    required: Iterable[Capability],
    available: Iterable[Capability],
) -> list[Capability]:
    """Return the required capabilities that are not available, in enum order."""
    available_set = frozenset(available)
    required_set = frozenset(required)
    return [cap for cap in Capability if cap in required_set and cap not in available_set]


def default_capabilities(family: "ModelFamily") -> frozenset[Capability]:
    """Return the fixed capability set for a model family.

    Unknown families only get ``basic_completion``.
    """
    return _FAMILY_CAPABILITIES.get(family.kind.value, frozenset({Capability.BASIC_COMPLETION}))


def describe(capability: Capability) -> str:
    """Return a human-readable description of a capability."""
    return _DESCRIPTIONS[capability]


def parse_capabilities(names: Iterable[str]) -> frozenset[Capability]:
    """Parse capability names such as ``code-generation`` or ``CODE_GENERATION``.

    Raises:
        InvalidTaskError: If a name is not a known capability.
    """
    parsed = set()
    for name in names:
        normalized = name.strip().lower().replace("-", "_")
        try:
            parsed.add(Capability(normalized))
        except ValueError as e:
            raise InvalidTaskError(f"unknown capability '{name}'") from e
    return frozenset(parsed)

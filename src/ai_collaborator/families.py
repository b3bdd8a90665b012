"""Model family classification.

A model family is derived from a model identifier (for example
``codellama:7b``) and decides the default capabilities and the sampling
temperature an adapter uses for that model.
"""

from dataclasses import dataclass
from enum import Enum

from .capabilities import Capability, default_capabilities


class FamilyKind(Enum):
    """Known model families."""
    LLAMA = "llama"
    CODELLAMA = "codellama"
    MISTRAL = "mistral"
    MIXTRAL = "mixtral"
    PHI = "phi"
    GEMMA = "gemma"
    STABLE = "stable"
    OTHER = "other"


# most specific tokens first: "codellama" must win over "llama", and
# "mistral" must be checked before "phi" (dolphin-mistral contains "phi")
_DETECTION_ORDER: tuple[tuple[str, FamilyKind], ...] = (
    ("codellama", FamilyKind.CODELLAMA),
    ("mixtral", FamilyKind.MIXTRAL),
    ("mistral", FamilyKind.MISTRAL),
    ("llama", FamilyKind.LLAMA),
    ("gemma", FamilyKind.GEMMA),
    ("phi", FamilyKind.PHI),
    ("stable", FamilyKind.STABLE),
)

_TEMPERATURES: dict[FamilyKind, float] = {
    FamilyKind.CODELLAMA: 0.3,
    FamilyKind.LLAMA: 0.7,
    FamilyKind.MISTRAL: 0.7,
    FamilyKind.PHI: 0.7,
    FamilyKind.GEMMA: 0.8,
    FamilyKind.MIXTRAL: 0.75,
    FamilyKind.STABLE: 0.8,
}

DEFAULT_TEMPERATURE = 0.7

_SUMMARIES: dict[FamilyKind, str] = {
    FamilyKind.LLAMA: (
        "Llama models excel at general text generation, conversational "
        "interactions, basic reasoning and document analysis."
    ),
    FamilyKind.CODELLAMA: (
        "CodeLlama models excel at code generation, code completion, code "
        "explanation and technical documentation."
    ),
    FamilyKind.MISTRAL: (
        "Mistral models excel at efficient text generation, instruction "
        "following and reasoning."
    ),
    FamilyKind.MIXTRAL: (
        "Mixtral models use a mixture-of-experts architecture for "
        "multi-domain expertise and complex reasoning."
    ),
    FamilyKind.PHI: (
        "Phi models are small and efficient, suited to basic text and code "
        "tasks on modest hardware."
    ),
    FamilyKind.GEMMA: (
        "Gemma models are lightweight general-purpose models, good at "
        "instruction following and creative writing."
    ),
    FamilyKind.STABLE: "Stable models are specialized for image generation and multimodal tasks.",
}


@dataclass(frozen=True)
class ModelFamily:
    """Classification of a model identifier.

    Attributes:
        kind: The detected family
        model_name: The unrecognized identifier (only set for ``OTHER``)
    """
    kind: FamilyKind
    model_name: str | None = None

    @classmethod
    def from_model_name(cls, name: str) -> "ModelFamily":
        """Detect the family of a model identifier.

        Matching is a case-insensitive substring search in a fixed order.
        Names mentioning both "llama" and "code" (``llama-code``) are
        treated as codellama.
        """
        lowered = name.lower()
        if "llama" in lowered and "code" in lowered:
            return cls(FamilyKind.CODELLAMA)
        for token, kind in _DETECTION_ORDER:
            if token in lowered:
                return cls(kind)
        return cls(FamilyKind.OTHER, name)

    @property
    def recommended_temperature(self) -> float:
        return _TEMPERATURES.get(self.kind, DEFAULT_TEMPERATURE)

    @property
    def default_capabilities(self) -> frozenset[Capability]:
        return default_capabilities(self)

    @property
    def is_known(self) -> bool:
        return self.kind is not FamilyKind.OTHER

    def describe(self) -> str:
        """Return a short description of what models in this family are good at."""
        return _SUMMARIES.get(
            self.kind,
            "Custom or specialized model. Capabilities depend on its training and architecture.",
        )

    def __str__(self) -> str:
        if self.kind is FamilyKind.OTHER:
            return f"other({self.model_name})"
        return self.kind.value


def heuristic_memory_gb(model_name: str) -> float:
    """Estimate RAM needed for a model from its name alone.

    Used when the catalog does not report a size for the model.
    """
    family = ModelFamily.from_model_name(model_name)
    if family.kind is FamilyKind.LLAMA:
        if "70" in model_name:
            return 16.0
        if "13" in model_name:
            return 8.0
        return 4.0
    if family.kind is FamilyKind.MIXTRAL:
        return 12.0
    if family.kind is FamilyKind.CODELLAMA:
        return 8.0
    return 4.0

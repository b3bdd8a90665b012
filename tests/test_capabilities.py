"""Tests for the capability registry and model family detection."""

import pytest

from ai_collaborator.capabilities import (
    Capability,
    default_capabilities,
    describe,
    is_supported,
    missing_capabilities,
    parse_capabilities,
)
from ai_collaborator.exceptions import InvalidTaskError
from ai_collaborator.families import FamilyKind, ModelFamily, heuristic_memory_gb

from conftest import make_task


class TestIsSupported:
    """Tests for capability matching."""

    def test_subset_is_supported(self):
        task = make_task(capabilities={Capability.CODE_GENERATION})
        assert is_supported(task, {Capability.CODE_GENERATION, Capability.BASIC_COMPLETION})

    def test_exact_match_is_supported(self):
        task = make_task(capabilities={Capability.CONVERSATIONAL})
        assert is_supported(task, [Capability.CONVERSATIONAL])

    def test_missing_capability(self):
        task = make_task(capabilities={Capability.CODE_GENERATION, Capability.TRANSLATION})
        assert not is_supported(task, {Capability.CODE_GENERATION})

    def test_accepts_agent(self, agent):
        """Agents are matched through provide_capabilities()."""
        assert is_supported(make_task(), agent)
        assert not is_supported(make_task(capabilities={Capability.PLANNING}), agent)


class TestMissingCapabilities:

    def test_enum_order(self):
        missing = missing_capabilities(
            {Capability.MULTIMODAL, Capability.CODE_GENERATION, Capability.BASIC_COMPLETION},
            {Capability.BASIC_COMPLETION},
        )
        assert missing == [Capability.CODE_GENERATION, Capability.MULTIMODAL]

    def test_none_missing(self):
        assert missing_capabilities({Capability.BASIC_COMPLETION}, list(Capability)) == []


class TestParseCapabilities:

    def test_accepts_variants(self):
        parsed = parse_capabilities(["code-generation", "TEXT_ANALYSIS", " conversational "])
        assert parsed == {
            Capability.CODE_GENERATION,
            Capability.TEXT_ANALYSIS,
            Capability.CONVERSATIONAL,
        }

    def test_unknown_name(self):
        with pytest.raises(InvalidTaskError, match="telepathy"):
            parse_capabilities(["telepathy"])


def test_every_capability_is_described():
    for capability in Capability:
        assert describe(capability)


class TestModelFamily:
    """Tests for family detection."""

    @pytest.mark.parametrize(
        "name, kind",
        [
            ("codellama:7b", FamilyKind.CODELLAMA),
            ("llama-code:13b", FamilyKind.CODELLAMA),
            ("llama3:8b", FamilyKind.LLAMA),
            ("Llama2:70B", FamilyKind.LLAMA),
            ("mistral:7b", FamilyKind.MISTRAL),
            ("dolphin-mistral", FamilyKind.MISTRAL),
            ("mixtral:8x7b", FamilyKind.MIXTRAL),
            ("phi3:mini", FamilyKind.PHI),
            ("gemma:2b", FamilyKind.GEMMA),
            ("stable-diffusion", FamilyKind.STABLE),
        ],
    )
    def test_detection(self, name, kind):
        assert ModelFamily.from_model_name(name).kind == kind

    def test_unknown_family_keeps_name(self):
        family = ModelFamily.from_model_name("qwen2:7b")
        assert family.kind == FamilyKind.OTHER
        assert family.model_name == "qwen2:7b"
        assert str(family) == "other(qwen2:7b)"
        assert not family.is_known

    @pytest.mark.parametrize(
        "name, temperature",
        [
            ("codellama:7b", 0.3),
            ("llama3:8b", 0.7),
            ("gemma:2b", 0.8),
            ("mixtral:8x7b", 0.75),
            ("qwen2:7b", 0.7),
        ],
    )
    def test_recommended_temperature(self, name, temperature):
        assert ModelFamily.from_model_name(name).recommended_temperature == temperature


class TestDefaultCapabilities:
    """Tests for family-driven capability sets."""

    def test_codellama(self):
        caps = default_capabilities(ModelFamily.from_model_name("codellama:7b"))
        assert Capability.CODE_GENERATION in caps
        assert Capability.CODE_COMPLETION in caps
        assert Capability.CONVERSATIONAL not in caps

    def test_llama(self):
        caps = ModelFamily.from_model_name("llama3:8b").default_capabilities
        assert {Capability.BASIC_COMPLETION, Capability.CONVERSATIONAL, Capability.TEXT_ANALYSIS} <= caps
        assert Capability.CODE_GENERATION not in caps

    def test_other(self):
        caps = default_capabilities(ModelFamily.from_model_name("qwen2:7b"))
        assert caps == {Capability.BASIC_COMPLETION}


class TestMemoryHeuristics:

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("llama2:70b", 16.0),
            ("llama2:13b", 8.0),
            ("llama3:8b", 4.0),
            ("mixtral:8x7b", 12.0),
            ("codellama:7b", 8.0),
            ("qwen2:7b", 4.0),
        ],
    )
    def test_estimates(self, name, expected):
        assert heuristic_memory_gb(name) == expected

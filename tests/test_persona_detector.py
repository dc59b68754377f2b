"""Tests for project type classification, rule scoring and the combination policy."""

import asyncio
from typing import Optional

import pytest

from conftest import BUILDER_TEXT, HOMEOWNER_TEXT
from persona_bundles.ai_classifier import AIClassifier
from persona_bundles.exceptions import EmptyInputError
from persona_bundles.models import DetectionResult, Persona, PersonaDetectionRequest, ProjectType
from persona_bundles.persona_detector import (
    PersonaAIClassifier,
    PersonaDetector,
    PersonaRuleEngine,
    ProjectTypeClassifier,
    combine_results,
)
from persona_bundles.personas import get_profile


class StubClassifier(AIClassifier):
    def __init__(self, reply: Optional[dict] = None, delay: float = 0.0, error: Optional[Exception] = None):
        self.reply = reply
        self.delay = delay
        self.error = error
        self.prompts = []

    async def classify(self, prompt: str) -> Optional[dict]:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


def _result(persona, confidence, method="rule-based") -> DetectionResult:
    return DetectionResult(persona=persona, confidence=confidence, method=method)


class TestProjectType:
    def test_commercial_when_commercial_terms_win(self):
        text = "our company office needs an enterprise network"
        assert ProjectTypeClassifier().classify(text) == ProjectType.COMMERCIAL

    def test_tie_is_residential(self):
        assert ProjectTypeClassifier().classify("a home office") == ProjectType.RESIDENTIAL

    def test_no_terms_is_residential(self):
        assert ProjectTypeClassifier().classify("hello there") == ProjectType.RESIDENTIAL


class TestRuleEngine:
    """Weighted scoring over eligible personas."""

    def test_score_weights(self):
        """keywords x1, phrases x2 (worth 2 each), context clues x3, then the boost."""
        profile = get_profile("homeowner")
        # keywords: home, family -> 2; phrase "my family" -> 4; context "homeowner" -> 3
        score = PersonaRuleEngine().score("as a homeowner i want my family home safe", profile)
        assert score == pytest.approx((2 + 4 + 3) * 1.2)

    def test_homeowner_scenario(self):
        result = PersonaRuleEngine().detect(HOMEOWNER_TEXT, ProjectType.RESIDENTIAL)
        assert result.persona == Persona.HOMEOWNER
        # home, family, kids = 3 keywords, x 1.2 boost
        assert result.confidence == pytest.approx(0.36)
        assert result.method == "rule-based"
        assert result.alternatives[0].persona == Persona.BUILDER
        assert len(result.alternatives) == 2
        assert "kids" in result.key_indicators

    def test_builder_scenario(self):
        result = PersonaRuleEngine().detect(BUILDER_TEXT, ProjectType.RESIDENTIAL)
        assert result.persona == Persona.BUILDER
        assert result.confidence == pytest.approx(0.95)

    def test_confidence_is_capped(self):
        text = " ".join(["homeowner residential mortgage my home family kids"] * 5)
        result = PersonaRuleEngine().detect(text, ProjectType.RESIDENTIAL)
        assert result.confidence == pytest.approx(0.95)

    def test_all_zero_picks_first_persona_of_project_type(self):
        residential = PersonaRuleEngine().detect("hello there", ProjectType.RESIDENTIAL)
        commercial = PersonaRuleEngine().detect("hello there", ProjectType.COMMERCIAL)
        assert residential.persona == Persona.HOMEOWNER
        assert residential.confidence == 0.0
        assert commercial.persona == Persona.CTO_CIO

    def test_only_eligible_personas_scored(self):
        result = PersonaRuleEngine().detect(HOMEOWNER_TEXT, ProjectType.RESIDENTIAL)
        scores = dict(result.detailed_scores)
        assert set(scores) == {"homeowner", "interior-designer", "builder", "architect"}

    def test_deterministic(self):
        engine = PersonaRuleEngine()
        first = engine.detect(BUILDER_TEXT, ProjectType.RESIDENTIAL).to_dict()
        second = engine.detect(BUILDER_TEXT, ProjectType.RESIDENTIAL).to_dict()
        assert first == second


class TestCombineResults:
    """The four combination branches, checked in order."""

    def test_no_ai_result(self):
        rule = _result(Persona.HOMEOWNER, 0.4)
        combined = combine_results(None, rule)
        assert combined.persona == Persona.HOMEOWNER
        assert combined.combined_method == "rule-based-only"

    def test_confident_ai_wins(self):
        ai = _result(Persona.INTERIOR_DESIGNER, 0.9, method="ai")
        rule = _result(Persona.HOMEOWNER, 0.3)
        combined = combine_results(ai, rule)
        assert combined.persona == Persona.INTERIOR_DESIGNER
        assert combined.confidence == pytest.approx(0.9)
        assert combined.combined_method == "ai-primary"
        assert combined.rule_based_backup == rule

    def test_rule_wins_by_margin(self):
        ai = _result(Persona.ARCHITECT, 0.5, method="ai")
        rule = _result(Persona.HOMEOWNER, 0.8)
        combined = combine_results(ai, rule)
        assert combined.persona == Persona.HOMEOWNER
        assert combined.confidence == pytest.approx(0.8)
        assert combined.combined_method == "rule-based-primary"
        assert combined.ai_backup == ai

    def test_weighted_average(self):
        ai = _result(Persona.ARCHITECT, 0.6, method="ai")
        rule = _result(Persona.HOMEOWNER, 0.55)
        combined = combine_results(ai, rule)
        assert combined.persona == Persona.ARCHITECT
        assert combined.confidence == pytest.approx(0.58)
        assert combined.method == "combined"
        assert combined.combined_method == "weighted-average"
        assert combined.ai_backup == ai
        assert combined.rule_based_backup == rule

    def test_ai_at_threshold_is_not_primary(self):
        """0.8 is not above the AI-primary threshold."""
        ai = _result(Persona.ARCHITECT, 0.8, method="ai")
        rule = _result(Persona.HOMEOWNER, 0.7)
        combined = combine_results(ai, rule)
        assert combined.combined_method == "weighted-average"
        assert combined.confidence == pytest.approx(0.76)
        assert combined.persona == Persona.ARCHITECT

    def test_weighted_tie_goes_to_rule_persona(self):
        ai = _result(Persona.ARCHITECT, 0.5, method="ai")
        rule = _result(Persona.HOMEOWNER, 0.5)
        combined = combine_results(ai, rule)
        assert combined.persona == Persona.HOMEOWNER
        assert combined.confidence == pytest.approx(0.5)


class TestDetectionResult:
    @pytest.mark.parametrize("raw, expected", [
        (float("nan"), 0.0), (float("inf"), 0.0), (float("-inf"), 0.0), (1.4, 1.0), (-0.2, 0.0), (0.42, 0.42),
    ])
    def test_confidence_is_bounded(self, raw, expected):
        assert _result(Persona.HOMEOWNER, raw).confidence == pytest.approx(expected)

    def test_backups_serialize_scores_as_dicts(self):
        """Nested backups use the same score layout as the top level."""
        rule = DetectionResult(persona=Persona.HOMEOWNER, confidence=0.6, method="rule-based",
                               detailed_scores=(("homeowner", 12.0), ("builder", 2.0)))
        ai = DetectionResult(persona=Persona.BUILDER, confidence=0.5, method="ai")
        data = combine_results(ai, rule).to_dict()
        assert data["combined_method"] == "weighted-average"
        assert data["detailed_scores"] == {"homeowner": 12.0, "builder": 2.0}
        assert data["rule_based_backup"]["detailed_scores"] == {"homeowner": 12.0, "builder": 2.0}
        assert data["ai_backup"]["detailed_scores"] == {}


class TestPersonaAIClassifier:
    def test_prompt_lists_eligible_personas(self):
        prompt = PersonaAIClassifier(StubClassifier()).build_prompt(
            "we run a small business", ProjectType.COMMERCIAL, {"source": "voice"}
        )
        assert "- business-owner:" in prompt
        assert "- homeowner:" not in prompt
        assert "source: voice" in prompt

    @pytest.mark.asyncio
    async def test_reply_becomes_ai_result(self):
        stub = StubClassifier({"persona": "architect", "confidence": 0.7, "reasoning": "specs",
                               "key_indicators": ["specifications"]})
        result = await PersonaAIClassifier(stub).classify("technical specifications", ProjectType.RESIDENTIAL)
        assert result.persona == Persona.ARCHITECT
        assert result.method == "ai"
        assert result.key_indicators == ("specifications",)

    @pytest.mark.asyncio
    async def test_unknown_persona_is_unavailable(self):
        stub = StubClassifier({"persona": "astronaut", "confidence": 0.99})
        assert await PersonaAIClassifier(stub).classify("text", ProjectType.RESIDENTIAL) is None

    @pytest.mark.asyncio
    async def test_camel_case_indicators_are_kept(self):
        stub = StubClassifier({"persona": "homeowner", "confidence": 0.9,
                               "keyIndicators": ["kids", "family home"]})
        result = await PersonaAIClassifier(stub).classify("text", ProjectType.RESIDENTIAL)
        assert result.key_indicators == ("kids", "family home")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [
        "homeowner",
        ["homeowner", 0.9],
        {"persona": "homeowner", "confidence": "high"},
        {"persona": "homeowner", "confidence": float("nan")},
        {"persona": "homeowner", "confidence": float("inf")},
        {"persona": 7, "confidence": 0.8},
        {},
    ])
    async def test_malformed_reply_is_unavailable(self, reply):
        stub = StubClassifier(reply)
        assert await PersonaAIClassifier(stub).classify("text", ProjectType.RESIDENTIAL) is None


class TestPersonaDetector:
    """End-to-end detection with stubbed AI classifiers."""

    @pytest.mark.asyncio
    async def test_rule_based_only_without_ai(self):
        result = await PersonaDetector().detect(PersonaDetectionRequest(text=HOMEOWNER_TEXT))
        assert result.persona == Persona.HOMEOWNER
        assert result.combined_method == "rule-based-only"
        assert result.project_type == ProjectType.RESIDENTIAL

    @pytest.mark.asyncio
    async def test_voice_transcript_alone_is_enough(self):
        result = await PersonaDetector().detect(PersonaDetectionRequest(voice_transcript=BUILDER_TEXT))
        assert result.persona == Persona.BUILDER

    @pytest.mark.asyncio
    async def test_confident_ai_reply(self):
        stub = StubClassifier({"persona": "interior-designer", "confidence": 0.92, "reasoning": "design talk",
                               "key_indicators": []})
        result = await PersonaDetector(stub).detect(PersonaDetectionRequest(text=HOMEOWNER_TEXT))
        assert result.persona == Persona.INTERIOR_DESIGNER
        assert result.combined_method == "ai-primary"
        assert result.rule_based_backup.persona == Persona.HOMEOWNER
        assert len(stub.prompts) == 1

    @pytest.mark.asyncio
    async def test_ai_timeout_falls_back_to_rules(self):
        stub = StubClassifier({"persona": "architect", "confidence": 0.99}, delay=1.0)
        detector = PersonaDetector(stub, ai_timeout=0.01)
        result = await detector.detect(PersonaDetectionRequest(text=HOMEOWNER_TEXT))
        assert result.persona == Persona.HOMEOWNER
        assert result.combined_method == "rule-based-only"

    @pytest.mark.asyncio
    async def test_ai_error_falls_back_to_rules(self):
        stub = StubClassifier(error=RuntimeError("provider exploded"))
        result = await PersonaDetector(stub).detect(PersonaDetectionRequest(text=BUILDER_TEXT))
        assert result.persona == Persona.BUILDER
        assert result.combined_method == "rule-based-only"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [
        "homeowner",
        {"persona": "architect", "confidence": "high"},
        {"persona": "architect", "confidence": float("nan")},
    ])
    async def test_malformed_ai_reply_falls_back_to_rules(self, reply):
        result = await PersonaDetector(StubClassifier(reply)).detect(PersonaDetectionRequest(text=BUILDER_TEXT))
        assert result.persona == Persona.BUILDER
        assert result.combined_method == "rule-based-only"
        assert 0.0 <= result.confidence <= 1.0

    @pytest.mark.asyncio
    async def test_empty_input_raises(self):
        with pytest.raises(EmptyInputError):
            await PersonaDetector().detect(PersonaDetectionRequest(text="   ", voice_transcript=""))

    @pytest.mark.asyncio
    async def test_confidence_always_in_bounds(self):
        stub = StubClassifier({"persona": "builder", "confidence": 0.5})
        for text in (HOMEOWNER_TEXT, BUILDER_TEXT, "office building", "x"):
            result = await PersonaDetector(stub).detect(PersonaDetectionRequest(text=text))
            assert 0.0 <= result.confidence <= 1.0

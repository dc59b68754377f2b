"""End-to-end tests for the proposal advisor."""

from unittest.mock import AsyncMock

import pytest

from conftest import BUILDER_TEXT, HOMEOWNER_TEXT
from persona_bundles.advisor import ProposalAdvisor, build_advisor
from persona_bundles.catalog import CatalogProvider, FallbackCatalog
from persona_bundles.config import Settings
from persona_bundles.exceptions import (
    CatalogError,
    NoProductsAvailableError,
    RecommendationFailedError,
    UnknownPersonaError,
)
from persona_bundles.models import Persona, PersonaDetectionRequest, RecommendationRequest, Tier
from persona_bundles.persona_detector import PersonaDetector
from persona_bundles.recommendation_engine import RecommendationEngine
from persona_bundles.transcript_extractors import extract_budget


class BrokenCatalog(CatalogProvider):
    async def list_active_products(self):
        raise CatalogError("connection refused")


def _assert_ladder(result):
    good, better, best = result.tiers
    assert good.total < better.total < best.total
    assert good.item_count <= better.item_count <= best.item_count


class TestScenarios:
    """Detection through recommendation over the static catalog."""

    @pytest.mark.asyncio
    async def test_homeowner(self, advisor):
        detection = await advisor.detect_persona(PersonaDetectionRequest(text=HOMEOWNER_TEXT))
        assert detection.persona == Persona.HOMEOWNER
        budget = extract_budget(HOMEOWNER_TEXT)
        assert budget == 15_000

        result = await advisor.recommend(RecommendationRequest(
            persona=detection.persona.value,
            persona_confidence=detection.confidence,
            budget=budget,
        ))
        assert result.bundle_strategy == "essential-plus-convenience"
        assert result.recommended_tier == Tier.BETTER
        assert 5_000 <= result.better_tier.total <= 25_000
        assert result.estimated_total == result.better_tier.total
        assert result.persona_confidence == pytest.approx(0.36)
        assert result.budget_fit.status == "within-budget"
        _assert_ladder(result)

    @pytest.mark.asyncio
    async def test_builder(self, advisor):
        detection = await advisor.detect_persona(PersonaDetectionRequest(text=BUILDER_TEXT))
        assert detection.persona == Persona.BUILDER

        result = await advisor.recommend(RecommendationRequest(persona="builder"))
        assert result.bundle_strategy == "volume-efficient"
        assert result.recommended_tier == Tier.GOOD
        better_names = [i.name for i in result.better_tier.items]
        assert "Professional Installation & Setup" not in better_names
        # builders are exempt from the Best floor
        assert result.best_tier.total < 10_000
        assert not any("floor" in w for w in result.warnings)
        _assert_ladder(result)

    @pytest.mark.asyncio
    async def test_catalog_failure_uses_static_catalog(self):
        advisor = ProposalAdvisor(PersonaDetector(), RecommendationEngine(FallbackCatalog(BrokenCatalog())))
        result = await advisor.recommend(RecommendationRequest(persona="homeowner", budget=15_000))
        assert result.good_tier.item_count > 0
        _assert_ladder(result)

    @pytest.mark.asyncio
    async def test_every_persona_produces_a_valid_ladder(self, advisor):
        for persona in Persona:
            result = await advisor.recommend(RecommendationRequest(persona=persona.value))
            assert result.persona == persona
            _assert_ladder(result)

    @pytest.mark.asyncio
    async def test_serialized_shape(self, advisor):
        result = await advisor.recommend(RecommendationRequest(persona="architect", budget=60_000))
        data = result.to_dict()
        assert data["schema_version"] == 1
        assert data["persona"] == "architect"
        assert set(data["recommendations"]) == {
            "good_tier", "better_tier", "best_tier", "recommended_tier", "estimated_total",
        }
        assert data["recommendations"]["best_tier"]["tier"] == "best"


class TestRecommendErrors:
    @pytest.mark.asyncio
    async def test_unknown_persona(self, advisor):
        with pytest.raises(UnknownPersonaError):
            await advisor.recommend(RecommendationRequest(persona="astronaut"))

    @pytest.mark.asyncio
    async def test_no_products(self, empty_catalog):
        advisor = ProposalAdvisor(PersonaDetector(), RecommendationEngine(empty_catalog))
        with pytest.raises(NoProductsAvailableError):
            await advisor.recommend(RecommendationRequest(persona="homeowner"))

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        engine = AsyncMock(spec=RecommendationEngine)
        engine.build_base_items.side_effect = RuntimeError("boom")
        advisor = ProposalAdvisor(PersonaDetector(), engine)
        with pytest.raises(RecommendationFailedError) as excinfo:
            await advisor.recommend(RecommendationRequest(persona="homeowner"))
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_uncovered_requirement_warns(self, advisor):
        result = await advisor.recommend(RecommendationRequest(
            persona="homeowner", specific_requirements=("audio-video",),
        ))
        assert any("audio-video" in w for w in result.warnings)


class TestResolvePersona:
    @pytest.mark.asyncio
    async def test_explicit_persona(self, advisor):
        assert await advisor.resolve_persona("Builder") == (Persona.BUILDER, 1.0)

    @pytest.mark.asyncio
    async def test_detected_from_text(self, advisor):
        persona, confidence = await advisor.resolve_persona(None, BUILDER_TEXT)
        assert persona == Persona.BUILDER
        assert confidence == pytest.approx(0.95)

    @pytest.mark.asyncio
    async def test_default(self, advisor):
        assert await advisor.resolve_persona() == (Persona.HOMEOWNER, 0.5)


class TestReferenceData:
    @pytest.mark.parametrize("persona, tier, alignment", [
        ("homeowner", "better", "optimal"),
        ("homeowner", "best", "upgrade"),
        ("builder", "best", "alternative"),
    ])
    def test_tier_alignment(self, advisor, persona, tier, alignment):
        assert advisor.pricing_guidance(persona, tier)["tier_alignment"] == alignment

    def test_budget_status(self, advisor):
        assert advisor.pricing_guidance("homeowner", "good", 10_000)["budget_fit"]["status"] == "optimal"
        assert advisor.pricing_guidance("homeowner", "good", 30_000)["budget_fit"]["status"] == "outside-range"
        assert advisor.pricing_guidance("homeowner", "good")["budget_fit"] is None

    def test_invalid_inputs(self, advisor):
        with pytest.raises(UnknownPersonaError):
            advisor.pricing_guidance("astronaut", "good")
        with pytest.raises(ValueError):
            advisor.pricing_guidance("homeowner", "platinum")

    def test_list_personas(self, advisor):
        data = advisor.list_personas()
        assert data["total_personas"] == 9
        assert data["personas"]["homeowner"]["bundle_strategy"]["name"] == "essential-plus-convenience"
        assert len(data["bundle_strategies"]) == 9


class TestBuildAdvisor:
    @pytest.mark.asyncio
    async def test_defaults_to_rule_based_static(self):
        advisor = build_advisor(Settings())
        assert not advisor.detector.ai.enabled
        assert advisor.engine.catalog.primary is None
        await advisor.aclose()

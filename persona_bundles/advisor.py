"""
advisor.py - Persona-driven proposal advisor

Single entry point for callers (HTTP API, CLI, proposal tooling):

    detect_persona()    text / transcript -> DetectionResult
    recommend()         persona + budget  -> RecommendationResult (Good/Better/Best)
    pricing_guidance()  persona + tier    -> tier alignment and budget status
    list_personas()     persona preferences joined with bundle strategies

Collaborators are injected; build_advisor() wires them from Settings.

Usage:
    from persona_bundles.advisor import build_advisor
    advisor = build_advisor(Settings.from_env())
    result = await advisor.recommend(RecommendationRequest(persona="homeowner", budget=15_000))
"""

import logging
from dataclasses import asdict
from typing import Optional, Union

from persona_bundles.ai_classifier import build_classifier
from persona_bundles.bundle_strategies import STRATEGIES, select_strategy
from persona_bundles.catalog import build_catalog
from persona_bundles.config import Settings
from persona_bundles.exceptions import PersonaBundlesError, RecommendationFailedError
from persona_bundles.models import (
    DetectionResult,
    Persona,
    PersonaDetectionRequest,
    RecommendationRequest,
    RecommendationResult,
    Tier,
)
from persona_bundles.persona_detector import PersonaDetector
from persona_bundles.personas import PERSONA_PROFILES, get_profile, parse_persona
from persona_bundles.recommendation_engine import RecommendationEngine
from persona_bundles.tier_builder import TierAssembler, TierValidator, budget_fit

logger = logging.getLogger(__name__)

DEFAULT_PERSONA = Persona.HOMEOWNER
DEFAULT_PERSONA_CONFIDENCE = 0.5


def _strategy_dict(name: str) -> dict:
    strategy = STRATEGIES[name]
    return {
        "name": strategy.name,
        "description": strategy.description,
        "approach": strategy.approach,
        "categories": [c.value for c in strategy.categories],
        "distribution": {c.value: pct for c, pct in strategy.distribution.items()},
    }


class ProposalAdvisor:
    def __init__(
        self,
        detector: PersonaDetector,
        engine: RecommendationEngine,
        assembler: Optional[TierAssembler] = None,
        validator: Optional[TierValidator] = None,
    ):
        self.detector = detector
        self.engine = engine
        self.assembler = assembler or TierAssembler()
        self.validator = validator or TierValidator()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    async def detect_persona(self, request: PersonaDetectionRequest) -> DetectionResult:
        return await self.detector.detect(request)

    async def resolve_persona(
        self,
        persona: Optional[str] = None,
        text: Optional[str] = None,
    ) -> tuple[Persona, float]:
        """
        Persona for a recommendation: the given one, else detected from
        text, else the default homeowner at 0.5 confidence.
        """
        if persona:
            return parse_persona(persona), 1.0
        if text and text.strip():
            result = await self.detector.detect(PersonaDetectionRequest(text=text))
            return result.persona, result.confidence
        logger.info("No persona or text supplied; defaulting to %s", DEFAULT_PERSONA.value)
        return DEFAULT_PERSONA, DEFAULT_PERSONA_CONFIDENCE

    # ------------------------------------------------------------------
    # Recommendation
    # ------------------------------------------------------------------

    async def recommend(self, request: RecommendationRequest) -> RecommendationResult:
        """
        Build a validated Good/Better/Best recommendation.

        Raises:
            UnknownPersonaError: persona not in the persona table
            NoProductsAvailableError: live and fallback catalogs both empty
            RecommendationFailedError: anything unexpected during assembly
        """
        profile = get_profile(request.persona)
        persona = profile.persona
        logger.info("Generating recommendations for %s (budget=%s, size=%s, urgency=%s)",
                    persona.value, request.budget, request.project_size, request.urgency)

        try:
            strategy = select_strategy(profile, request.budget, request.project_size)
            base_items = await self.engine.build_base_items(profile, strategy, request.budget)
            tiers = self.validator.validate(self.assembler.assemble(base_items, profile), persona)
        except PersonaBundlesError:
            raise
        except Exception as e:
            logger.exception("Recommendation failed for %s", persona.value)
            raise RecommendationFailedError(f"Recommendation failed for {persona.value}: {e}") from e

        warnings = list(tiers.warnings)
        covered = {c.value for c in strategy.categories}
        for requirement in request.specific_requirements:
            if requirement not in covered:
                warnings.append(f"requested {requirement} is not part of the {strategy.name} bundle")

        confidence = request.persona_confidence
        result = RecommendationResult(
            persona=persona,
            persona_confidence=1.0 if confidence is None else confidence,
            bundle_strategy=strategy.name,
            good_tier=tiers.good,
            better_tier=tiers.better,
            best_tier=tiers.best,
            recommended_tier=profile.preferred_tier,
            competitive_advantage=tiers.competitive_advantage,
            budget_fit=budget_fit(tiers.better.total, request.budget),
            warnings=tuple(warnings),
        )
        logger.info("Recommendation for %s ready: strategy %s, recommended tier %s, estimate $%s",
                    persona.value, strategy.name, result.recommended_tier.value,
                    f"{result.estimated_total:,.0f}")
        return result

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    def pricing_guidance(
        self,
        persona: Union[str, Persona],
        tier: Union[str, Tier],
        budget: Optional[float] = None,
    ) -> dict:
        """
        How a tier and budget line up with a persona's preferences.

        Raises:
            UnknownPersonaError: unknown persona
            ValueError: unknown tier
        """
        profile = get_profile(persona)
        tier = Tier(tier)

        if tier == profile.preferred_tier:
            alignment = "optimal"
        elif tier == Tier.BEST and profile.preferred_tier == Tier.BETTER:
            alignment = "upgrade"
        else:
            alignment = "alternative"

        fit = None
        if budget:
            in_range = profile.budget_range.min <= budget <= profile.budget_range.max
            fit = {
                "provided": budget,
                "recommended": asdict(profile.budget_range),
                "status": "optimal" if in_range else "outside-range",
            }

        return {
            "persona": profile.persona.value,
            "tier": tier.value,
            "price_multiplier": profile.price_multiplier,
            "budget_range": asdict(profile.budget_range),
            "preferred_tier": profile.preferred_tier.value,
            "tier_alignment": alignment,
            "budget_fit": fit,
        }

    def list_personas(self) -> dict:
        personas = {}
        for persona, profile in PERSONA_PROFILES.items():
            personas[persona.value] = {
                "project_type": profile.project_type.value,
                "preferred_tier": profile.preferred_tier.value,
                "priority_categories": [c.value for c in profile.priority_categories],
                "budget_range": asdict(profile.budget_range),
                "key_features": list(profile.key_features),
                "price_multiplier": profile.price_multiplier,
                "max_items": profile.max_items,
                "bundle_strategy": _strategy_dict(profile.preferred_strategy),
            }
        return {
            "personas": personas,
            "bundle_strategies": {name: _strategy_dict(name) for name in STRATEGIES},
            "total_personas": len(personas),
        }

    async def aclose(self) -> None:
        await self.detector.ai.classifier.aclose()


def build_advisor(settings: Optional[Settings] = None) -> ProposalAdvisor:
    settings = settings or Settings.from_env()
    detector = PersonaDetector(build_classifier(settings), ai_timeout=settings.ai_timeout)
    engine = RecommendationEngine(build_catalog(settings))
    return ProposalAdvisor(detector, engine)

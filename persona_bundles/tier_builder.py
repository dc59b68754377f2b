"""
tier_builder.py - Good / Better / Best tier assembly and validation

TierAssembler slices the base recommendation into three nested tiers and
adds the service items each persona qualifies for. TierValidator then
enforces the price ladder (Good < Better < Best) and fills in missing
messaging. Every validator correction is recorded as a warning.

Budget fit and budget range labels for client communication live here too.

Usage:
    from persona_bundles.tier_builder import TierAssembler, TierValidator
    tiers = TierAssembler().assemble(base_items, profile)
    validated = TierValidator().validate(tiers, profile.persona)
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Optional

from persona_bundles.models import BudgetFit, Persona, RecommendationItem, Tier, TierBundle
from persona_bundles.personas import PersonaProfile

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_GOOD_ITEMS = 3
GOOD_SHARE = 0.65
BETTER_SHARE = 0.85
BETTER_EXTRA_ITEMS = 2
BEST_PREMIUM = 1.2

# Price ladder corrections. Tunable pricing policy.
BETTER_OVER_GOOD = 1.3
BEST_OVER_BETTER = 1.4
BEST_FLOOR = 10_000
BEST_FLOOR_OVER_BETTER = 1.5
BEST_FLOOR_EXEMPT = {Persona.BUILDER}

DEFAULT_COMPETITIVE_ADVANTAGE = (
    "Revolutionary voice-to-approval automation with AI persona targeting delivers "
    "complete proposals in 30 seconds vs competitors' manual outline generation"
)

TIER_COMPETITIVE_ADVANTAGE: dict[Tier, str] = {
    Tier.GOOD: "Cost-effective foundation beating competitors on value",
    Tier.BETTER: "Optimal ROI with advanced AI-driven features",
    Tier.BEST: "Future-proof premium solution with voice-to-approval automation",
}

VALUE_PROPOSITIONS: dict[Tier, dict[Persona, str]] = {
    Tier.GOOD: {
        Persona.HOMEOWNER: "Essential smart home foundation with security and lighting automation",
        Persona.INTERIOR_DESIGNER: "Core aesthetic integration with premium lighting control",
        Persona.BUILDER: "Cost-effective standardized systems for multiple properties",
        Persona.ARCHITECT: "Professional-grade infrastructure foundation",
        Persona.BUSINESS_OWNER: "ROI-focused automation for operational efficiency",
        Persona.C_SUITE: "Executive foundation with premium positioning",
    },
    Tier.BETTER: {
        Persona.HOMEOWNER: "Complete smart home solution with convenience automation and professional installation",
        Persona.INTERIOR_DESIGNER: "Premium aesthetic integration with hidden technology and design consultation",
        Persona.BUILDER: "Standardized systems with bulk pricing and streamlined installation",
        Persona.ARCHITECT: "Comprehensive integration-ready solution with technical consulting",
        Persona.BUSINESS_OWNER: "Optimized business automation with ROI analysis and support",
        Persona.C_SUITE: "Executive-grade solution with premium features and priority support",
    },
    Tier.BEST: {
        Persona.HOMEOWNER: "Future-proof premium automation with AI intelligence and lifetime support",
        Persona.INTERIOR_DESIGNER: "Ultimate aesthetic integration with custom design and ongoing consultation",
        Persona.BUILDER: "Complete standardized solution with volume discounts and dedicated support",
        Persona.ARCHITECT: "Enterprise-grade scalable infrastructure with future enhancement guarantees",
        Persona.BUSINESS_OWNER: "Maximum ROI solution with advanced analytics and competitive advantages",
        Persona.C_SUITE: "Revolutionary executive automation with industry-leading capabilities and prestige positioning",
    },
}

# Budget range labels for client communication
BUDGET_RANGES = [
    (0,       25_000,  "Entry-Level"),
    (25_000,  75_000,  "Mid-Range"),
    (75_000,  150_000, "Premium"),
    (150_000, 300_000, "Luxury"),
    (300_000, float("inf"), "Ultra-Premium"),
]


def value_proposition(tier: Tier, persona: Persona) -> str:
    return VALUE_PROPOSITIONS[tier].get(
        persona, f"Premium {tier.value} tier solution optimized for {persona.value}"
    )


def budget_range_label(amount: float) -> str:
    for low, high, label in BUDGET_RANGES:
        if low <= amount < high:
            return label
    return BUDGET_RANGES[0][2]


def budget_fit(estimated_total: float, budget: Optional[float]) -> Optional[BudgetFit]:
    """How the Better tier total sits against the client budget; None without a budget."""
    if not budget or estimated_total <= 0:
        return None
    fit = budget / estimated_total * 100
    if fit >= 100:
        status = "within-budget"
    elif fit >= 80:
        status = "close-fit"
    else:
        status = "over-budget"
    return BudgetFit(
        percentage=round(fit),
        status=status,
        difference=budget - estimated_total,
        range_label=budget_range_label(estimated_total),
    )


def tier_total(items: list[RecommendationItem], multiplier: float) -> int:
    return round(sum(i.line_total for i in items) * multiplier)


# ---------------------------------------------------------------------------
# Service items
# ---------------------------------------------------------------------------

def _service_item(name, category, price, tier, reasoning, justification, edge) -> RecommendationItem:
    return RecommendationItem(
        name=name,
        category=category,
        unit_price=price,
        tier=tier,
        reasoning=reasoning,
        tier_justification=justification,
        competitive_edge=edge,
    )


def better_enhancements(base_items: list[RecommendationItem], profile: PersonaProfile) -> list[RecommendationItem]:
    extras = []
    if profile.include_installation and not any(i.category == "installation" for i in base_items):
        extras.append(_service_item(
            "Professional Installation & Setup", "installation", 2500.0, Tier.BETTER,
            "Professional installation ensures optimal performance and customer satisfaction",
            "White-glove professional installation",
            "Turnkey solution vs competitors' DIY approach",
        ))
    if profile.include_support:
        extras.append(_service_item(
            "12-Month Premium Support Package", "support", 1200.0, Tier.BETTER,
            "Comprehensive support package with priority response",
            "Priority support with 4-hour response time",
            "Proactive support vs competitors' reactive approach",
        ))
    return extras


def best_enhancements(profile: PersonaProfile) -> list[RecommendationItem]:
    extras = []
    if profile.wants_consulting:
        extras.append(_service_item(
            "AI-Powered Smart Home Consulting", "consulting", 3500.0, Tier.BEST,
            "Strategic consulting to maximize smart home ROI and future-proof the investment",
            "Strategic AI-powered optimization consulting",
            "Proprietary AI insights unavailable from competitors",
        ))
    extras.append(_service_item(
        "5-Year Extended Warranty & Performance Guarantee", "warranty", 2000.0, Tier.BEST,
        "Extended warranty with performance guarantees",
        "Comprehensive long-term protection",
        "Industry-leading warranty terms",
    ))
    extras.append(_service_item(
        "Future AI Enhancement Package", "upgrade", 1500.0, Tier.BEST,
        "Automatic AI feature upgrades and new capability rollouts",
        "Always-current AI capabilities",
        "Continuous innovation vs static competitor offerings",
    ))
    return extras


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------

@dataclass
class TierSet:
    good: TierBundle
    better: TierBundle
    best: TierBundle
    competitive_advantage: Optional[str] = None
    warnings: list[str] = field(default_factory=list)


class TierAssembler:
    """Base items -> nested Good / Better / Best bundles."""

    def tier_counts(self, n: int) -> tuple[int, int]:
        good = max(MIN_GOOD_ITEMS, math.floor(n * GOOD_SHARE))
        better = max(good + BETTER_EXTRA_ITEMS, math.floor(n * BETTER_SHARE))
        return good, better

    def assemble(self, base_items: list[RecommendationItem], profile: PersonaProfile) -> TierSet:
        persona = profile.persona
        good_count, better_count = self.tier_counts(len(base_items))

        good_items = [
            replace(i, tier=Tier.GOOD,
                    tier_justification=f"Essential {i.category} foundation",
                    competitive_edge="Meets basic requirements cost-effectively")
            for i in base_items[:good_count]
        ]
        better_items = [
            replace(i, tier=Tier.BETTER,
                    tier_justification=f"Enhanced {i.category} capabilities",
                    competitive_edge="Optimal ROI with advanced features")
            for i in base_items[:better_count]
        ]
        better_items += better_enhancements(base_items, profile)
        best_items = [replace(i, tier=Tier.BEST) for i in better_items] + best_enhancements(profile)

        multiplier = profile.price_multiplier
        tiers = TierSet(
            good=self._bundle(Tier.GOOD, good_items, tier_total(good_items, multiplier), persona),
            better=self._bundle(Tier.BETTER, better_items, tier_total(better_items, multiplier), persona),
            best=self._bundle(Tier.BEST, best_items, tier_total(best_items, multiplier * BEST_PREMIUM), persona),
        )
        tiers.competitive_advantage = competitive_summary(tiers, profile)
        logger.info("Tiers for %s: good $%s (%d) / better $%s (%d) / best $%s (%d)",
                    persona.value,
                    f"{tiers.good.total:,.0f}", tiers.good.item_count,
                    f"{tiers.better.total:,.0f}", tiers.better.item_count,
                    f"{tiers.best.total:,.0f}", tiers.best.item_count)
        return tiers

    @staticmethod
    def _bundle(tier: Tier, items: list[RecommendationItem], total: float, persona: Persona) -> TierBundle:
        return TierBundle(
            tier=tier,
            items=tuple(items),
            total=total,
            value_proposition=value_proposition(tier, persona),
            competitive_advantage=TIER_COMPETITIVE_ADVANTAGE[tier],
        )


def competitive_summary(tiers: TierSet, profile: PersonaProfile) -> str:
    lines = [
        "Complete voice-to-approval automation, not just voice-to-outline",
        "AI persona targeting tuned per customer type",
        "Intelligent product bundling with ROI optimization",
        f"{tiers.good.item_count}/{tiers.better.item_count}/{tiers.best.item_count} "
        "tier progression showing clear value",
        "30-second proposal generation vs competitors' manual processes",
    ]
    if profile.preferred_tier == Tier.BEST:
        lines.append("Executive-grade premium positioning")
    return "\n".join(f"- {line}" for line in lines)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class TierValidator:
    """Applies the price-ladder corrections once, in order."""

    def validate(self, tiers: TierSet, persona: Persona) -> TierSet:
        good, better, best = tiers.good, tiers.better, tiers.best
        warnings = list(tiers.warnings)

        def correct(message: str, *args) -> None:
            text = message % args
            logger.warning("Tier correction for %s: %s", persona.value, text)
            warnings.append(text)

        if better.total <= good.total:
            new_total = round(good.total * BETTER_OVER_GOOD)
            correct("better total %s <= good total %s; raised to %s", better.total, good.total, new_total)
            better = replace(better, total=new_total)

        if best.total <= better.total:
            new_total = round(better.total * BEST_OVER_BETTER)
            correct("best total %s <= better total %s; raised to %s", best.total, better.total, new_total)
            best = replace(best, total=new_total)

        if best.total < BEST_FLOOR and persona not in BEST_FLOOR_EXEMPT:
            new_total = round(max(best.total, better.total * BEST_FLOOR_OVER_BETTER))
            if new_total != best.total:
                correct("best total %s under $%s floor; raised to %s", best.total, f"{BEST_FLOOR:,}", new_total)
                best = replace(best, total=new_total)

        competitive_advantage = tiers.competitive_advantage
        if not competitive_advantage:
            competitive_advantage = DEFAULT_COMPETITIVE_ADVANTAGE
            warnings.append("missing competitive advantage; default message attached")

        if not good.item_count <= better.item_count <= best.item_count:
            correct("item counts not non-decreasing (%d/%d/%d)",
                    good.item_count, better.item_count, best.item_count)

        return TierSet(
            good=replace(good, total=round(good.total)),
            better=replace(better, total=round(better.total)),
            best=replace(best, total=round(best.total)),
            competitive_advantage=competitive_advantage,
            warnings=warnings,
        )

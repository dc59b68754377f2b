"""
bundle_strategies.py - Bundle strategy table and persona strategy selection

A bundle strategy names the categories a bundle draws from and how the
budget is split between them. Strategies are looked up by name, never
built at request time.

Usage:
    from persona_bundles.bundle_strategies import select_strategy
    strategy = select_strategy(profile, budget=12_000, project_size=3_200)
"""

import logging
from typing import TYPE_CHECKING, Optional

from persona_bundles.exceptions import PersonaTableError
from persona_bundles.models import BundleStrategy, Persona, ProductCategory

if TYPE_CHECKING:
    from persona_bundles.personas import PersonaProfile

logger = logging.getLogger(__name__)

SEC = ProductCategory.SECURITY
LIGHT = ProductCategory.LIGHTING
CLIMATE = ProductCategory.CLIMATE
AV = ProductCategory.AUDIO_VIDEO
NET = ProductCategory.NETWORKING
ACCESS = ProductCategory.ACCESS_CONTROL

ESSENTIAL_STRATEGY = "essential-plus-convenience"
COMPREHENSIVE_STRATEGY = "comprehensive-integration"

# Square-feet equivalent above which the essential bundle is upgraded
LARGE_PROJECT_SIZE = 10_000

# Budget below the persona minimum: explicit downgrade per persona
BUDGET_FALLBACK_STRATEGIES: dict[Persona, str] = {
    Persona.INTERIOR_DESIGNER: ESSENTIAL_STRATEGY,
    Persona.ARCHITECT: COMPREHENSIVE_STRATEGY,
    Persona.CTO_CIO: "business-optimization",
}


def _strategy(name: str, description: str, approach: str, distribution: dict) -> BundleStrategy:
    return BundleStrategy(
        name=name,
        description=description,
        approach=approach,
        categories=tuple(distribution),
        distribution=dict(distribution),
    )


STRATEGIES: dict[str, BundleStrategy] = {
    s.name: s for s in (
        _strategy(
            ESSENTIAL_STRATEGY,
            "Essential systems with convenient upgrades",
            "start-with-security-add-convenience",
            {SEC: 40, LIGHT: 35, CLIMATE: 25},
        ),
        _strategy(
            "premium-aesthetic",
            "High-end products with aesthetic focus",
            "premium-integrated-design",
            {LIGHT: 35, AV: 30, CLIMATE: 20, ACCESS: 15},
        ),
        _strategy(
            "volume-efficient",
            "Cost-effective standardized systems",
            "standardized-cost-optimized",
            {SEC: 45, LIGHT: 35, NET: 20},
        ),
        _strategy(
            COMPREHENSIVE_STRATEGY,
            "Complete integrated smart building solution",
            "full-integration-scalable",
            {NET: 25, LIGHT: 20, CLIMATE: 20, SEC: 20, AV: 15},
        ),
        _strategy(
            "enterprise-infrastructure",
            "Enterprise-grade scalable infrastructure",
            "infrastructure-first-scalable",
            {NET: 35, SEC: 30, ACCESS: 20, AV: 15},
        ),
        _strategy(
            "business-optimization",
            "ROI-focused business enhancement systems",
            "roi-focused-practical",
            {SEC: 40, AV: 35, LIGHT: 25},
        ),
        _strategy(
            "executive-premium",
            "Premium executive-focused systems",
            "premium-impressive-strategic",
            {AV: 35, LIGHT: 25, SEC: 25, CLIMATE: 15},
        ),
        _strategy(
            "workplace-efficiency",
            "Employee productivity and comfort focused",
            "productivity-comfort-efficiency",
            {LIGHT: 40, CLIMATE: 35, AV: 25},
        ),
        _strategy(
            "facilities-optimization",
            "Building management and efficiency systems",
            "monitoring-efficiency-maintenance",
            {CLIMATE: 30, LIGHT: 25, SEC: 25, NET: 20},
        ),
    )
}


def validate_strategies(strategies: dict[str, BundleStrategy]) -> None:
    bad = [
        f"{name} sums to {s.total_percentage}"
        for name, s in strategies.items()
        if abs(s.total_percentage - 100) > 0.5
    ]
    for persona, fallback in BUDGET_FALLBACK_STRATEGIES.items():
        if fallback not in strategies:
            bad.append(f"fallback for {persona.value} is unknown strategy {fallback!r}")
    if bad:
        raise PersonaTableError("Bundle strategy table invalid: " + "; ".join(bad))


validate_strategies(STRATEGIES)


def get_strategy(name: str) -> BundleStrategy:
    return STRATEGIES[name]


def select_strategy(
    profile: "PersonaProfile",
    budget: Optional[float] = None,
    project_size: Optional[float] = None,
) -> BundleStrategy:
    """
    Resolve the bundle strategy for a persona.

    Args:
        profile: Persona profile (supplies the preferred strategy and budget range)
        budget: Client budget; below the persona minimum triggers a cheaper strategy
            for the personas listed in BUDGET_FALLBACK_STRATEGIES
        project_size: Square-feet equivalent; large projects upgrade the
            essential strategy to the comprehensive one

    Returns:
        The shared BundleStrategy from STRATEGIES
    """
    name = profile.preferred_strategy

    if budget and budget < profile.budget_range.min:
        fallback = BUDGET_FALLBACK_STRATEGIES.get(profile.persona)
        if fallback:
            logger.info(
                "Budget $%s below %s minimum $%s: strategy %s -> %s",
                f"{budget:,.0f}", profile.persona.value, f"{profile.budget_range.min:,.0f}",
                name, fallback,
            )
            name = fallback

    if project_size and project_size > LARGE_PROJECT_SIZE and name == ESSENTIAL_STRATEGY:
        logger.info("Large project (%s sq ft): upgrading %s -> %s", project_size, name, COMPREHENSIVE_STRATEGY)
        name = COMPREHENSIVE_STRATEGY

    return STRATEGIES[name]

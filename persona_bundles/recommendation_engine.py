"""
recommendation_engine.py - Unified base recommendation for a persona

Steps for one request:
  1. Split the budget across the strategy's categories
  2. Score each catalog product in a category for relevance and pick greedily
     inside the category budget (plus the overrun allowance)
  3. Repair missing dependencies (network foundation)
  4. Remove conflicts (duplicate names, overfull categories)

The result is a flat, pre-tier list of RecommendationItem. Tiering happens
in tier_builder.py.

Usage:
    from persona_bundles.recommendation_engine import RecommendationEngine
    engine = RecommendationEngine(FallbackCatalog())
    items = await engine.build_base_items(profile, strategy, budget=15_000)
"""

import logging
import math
from typing import Optional

from persona_bundles.catalog import FallbackCatalog
from persona_bundles.models import BundleStrategy, Product, ProductCategory, RecommendationItem
from persona_bundles.personas import PersonaProfile

logger = logging.getLogger(__name__)

# Greedy selection may run this far past a category's budget share.
# Tunable pricing policy.
CATEGORY_OVERRUN_ALLOWANCE = 1.25
CATEGORY_ITEM_SHARE = 0.4            # of persona max_items, per category
MAX_ITEMS_PER_CATEGORY = 5           # after conflict removal

# Relevance weights
PRIORITY_STEP = 10
FEATURE_MATCH_POINTS = 15
TIER_FIT_POINTS = 20
TIER_NEAR_FIT_POINTS = 10
TIER_NEAR_FIT_FACTOR = 1.5

NETWORK_DEPENDENT = {
    ProductCategory.SECURITY.value,
    ProductCategory.LIGHTING.value,
    ProductCategory.AUDIO_VIDEO.value,
}
NETWORK_FOUNDATION_NAME = "Essential Network Foundation"
NETWORK_FOUNDATION_PRICE = 800.0


def allocate_budget(strategy: BundleStrategy, budget: float) -> dict[ProductCategory, float]:
    """Category -> dollars, in strategy category order."""
    return {cat: budget * strategy.distribution[cat] / 100 for cat in strategy.categories}


def category_item_limit(profile: PersonaProfile) -> int:
    return math.ceil(profile.max_items * CATEGORY_ITEM_SHARE)


# ---------------------------------------------------------------------------
# Relevance
# ---------------------------------------------------------------------------

def priority_weight(profile: PersonaProfile, category: ProductCategory) -> int:
    if category not in profile.priority_categories:
        return 0
    return (len(profile.priority_categories) - profile.priority_categories.index(category)) * PRIORITY_STEP


def feature_matches(profile: PersonaProfile, product: Product) -> list[str]:
    text = product.search_text
    return [f for f in profile.key_features if f.replace("-", " ").lower() in text]


def tier_fit_weight(profile: PersonaProfile, product: Product, budget_max: float) -> int:
    price = product.price_for_tier(profile.preferred_tier)
    per_item = budget_max / profile.max_items
    if price <= per_item:
        return TIER_FIT_POINTS
    if price <= per_item * TIER_NEAR_FIT_FACTOR:
        return TIER_NEAR_FIT_POINTS
    return 0


def relevance_score(profile: PersonaProfile, product: Product) -> float:
    score = priority_weight(profile, product.category)
    score += FEATURE_MATCH_POINTS * len(feature_matches(profile, product))
    score += tier_fit_weight(profile, product, profile.budget_range.max)
    return float(score)


def _reasoning(profile: PersonaProfile, product: Product) -> str:
    parts = [f"Selected for {profile.persona.value} in {product.category.value}"]
    if product.category in profile.priority_categories:
        parts.append("priority category")
    matched = feature_matches(profile, product)
    if matched:
        parts.append("matches " + ", ".join(matched))
    return "; ".join(parts)


# ---------------------------------------------------------------------------
# Repair passes
# ---------------------------------------------------------------------------

def add_missing_dependencies(items: list[RecommendationItem], profile: PersonaProfile) -> list[RecommendationItem]:
    categories = {i.category for i in items}
    if not categories & NETWORK_DEPENDENT or ProductCategory.NETWORKING.value in categories:
        return items
    logger.info("No networking selected for network-dependent systems; adding %s", NETWORK_FOUNDATION_NAME)
    return items + [RecommendationItem(
        name=NETWORK_FOUNDATION_NAME,
        description="Managed router, PoE switch and access point required by connected systems",
        category=ProductCategory.NETWORKING.value,
        unit_price=NETWORK_FOUNDATION_PRICE,
        tier=profile.preferred_tier,
        reasoning="Required infrastructure for security, lighting and audio-video devices",
        is_dependency=True,
    )]


def remove_conflicts(items: list[RecommendationItem]) -> list[RecommendationItem]:
    kept: list[RecommendationItem] = []
    names: set[str] = set()
    per_category: dict[str, int] = {}
    for item in items:
        if item.name in names:
            logger.debug("Dropping duplicate item %s", item.name)
            continue
        if per_category.get(item.category, 0) >= MAX_ITEMS_PER_CATEGORY:
            logger.debug("Dropping %s: %s already has %d items",
                         item.name, item.category, MAX_ITEMS_PER_CATEGORY)
            continue
        kept.append(item)
        names.add(item.name)
        per_category[item.category] = per_category.get(item.category, 0) + 1
    return kept


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class RecommendationEngine:
    """Builds the base (pre-tier) item list from the catalog."""

    def __init__(self, catalog: FallbackCatalog):
        self.catalog = catalog

    def select_for_category(
        self,
        profile: PersonaProfile,
        category: ProductCategory,
        candidates: list[Product],
        category_budget: float,
    ) -> list[RecommendationItem]:
        tier = profile.preferred_tier
        limit = category_item_limit(profile)
        ceiling = category_budget * CATEGORY_OVERRUN_ALLOWANCE

        scored = [(p, relevance_score(profile, p)) for p in candidates]
        scored.sort(key=lambda pair: pair[1], reverse=True)

        selected: list[RecommendationItem] = []
        spend = 0.0
        for product, score in scored:
            if len(selected) >= limit:
                break
            price = product.price_for_tier(tier)
            if spend + price > ceiling:
                continue
            spend += price
            selected.append(RecommendationItem(
                name=product.name,
                description=product.description,
                brand=product.brand,
                category=category.value,
                unit_price=price,
                tier=tier,
                product_id=product.id,
                reasoning=_reasoning(profile, product),
                relevance_score=score,
            ))

        logger.debug("%s: %d items, $%.0f of $%.0f (ceiling $%.0f)",
                     category.value, len(selected), spend, category_budget, ceiling)
        return selected

    async def build_base_items(
        self,
        profile: PersonaProfile,
        strategy: BundleStrategy,
        budget: Optional[float] = None,
    ) -> list[RecommendationItem]:
        """
        Produce the unified base recommendation.

        Args:
            profile: Persona profile
            strategy: Bundle strategy already resolved for the request
            budget: Client budget; defaults to the persona's budget maximum

        Raises:
            NoProductsAvailableError: if neither catalog has products
        """
        budget = budget or profile.budget_range.max
        products = await self.catalog.load()
        by_category: dict[ProductCategory, list[Product]] = {}
        for product in products:
            by_category.setdefault(product.category, []).append(product)

        items: list[RecommendationItem] = []
        for category, category_budget in allocate_budget(strategy, budget).items():
            candidates = by_category.get(category, [])
            if not candidates:
                logger.warning("No catalog products in category %s; skipping", category.value)
                continue
            items.extend(self.select_for_category(profile, category, candidates, category_budget))

        items = items[:profile.max_items]
        items = add_missing_dependencies(items, profile)
        items = remove_conflicts(items)

        logger.info("Base recommendation for %s (%s): %d items, budget $%s",
                    profile.persona.value, strategy.name, len(items), f"{budget:,.0f}")
        return items

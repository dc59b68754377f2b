"""Shared fixtures."""

import pytest

from persona_bundles.advisor import ProposalAdvisor
from persona_bundles.catalog import FallbackCatalog, StaticCatalogProvider
from persona_bundles.models import Product, ProductCategory, RecommendationItem, Tier
from persona_bundles.persona_detector import PersonaDetector
from persona_bundles.recommendation_engine import RecommendationEngine

HOMEOWNER_TEXT = "We have kids and want cameras and door locks for our family home, budget around $15,000"
BUILDER_TEXT = (
    "I'm a builder putting up 20 homes in a residential development; "
    "we need standardized, cost-effective systems with bulk pricing."
)


def make_product(pid, category, price, name=None, description="", active=True) -> Product:
    """Product with the same price on every tier."""
    return Product(
        id=pid,
        name=name or f"Product {pid}",
        category=category,
        base_price=price,
        description=description,
        good_tier_price=price,
        better_tier_price=price,
        best_tier_price=price,
        is_active=active,
    )


def make_item(name, category="security", price=100.0, tier=Tier.BETTER) -> RecommendationItem:
    return RecommendationItem(name=name, category=category, unit_price=price, tier=tier)


@pytest.fixture
def static_catalog():
    return FallbackCatalog()


@pytest.fixture
def empty_catalog():
    return FallbackCatalog(fallback=StaticCatalogProvider(()))


@pytest.fixture
def advisor(static_catalog):
    """Rule-based advisor over the static catalog."""
    return ProposalAdvisor(PersonaDetector(), RecommendationEngine(static_catalog))


@pytest.fixture
def security_products():
    return [make_product(f"sec-{i}", ProductCategory.SECURITY, 100 + i) for i in range(8)]

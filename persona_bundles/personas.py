"""
personas.py - Persona profiles and project-type term tables

Each persona carries two blocks of data:
  - detection patterns (keywords, phrases, context clues, confidence boost)
  - product preferences (priority categories, budget range, key features,
    bundle strategy, price multiplier, item cap, enhancement flags)

The table is built once at import, validated, and never mutated.

Usage:
    from persona_bundles.personas import get_profile, eligible_personas
    profile = get_profile("homeowner")
"""

import logging
from dataclasses import dataclass
from typing import Union

from persona_bundles.bundle_strategies import STRATEGIES
from persona_bundles.exceptions import PersonaTableError, UnknownPersonaError
from persona_bundles.models import Persona, ProductCategory, ProjectType, Tier

logger = logging.getLogger(__name__)

SEC = ProductCategory.SECURITY
LIGHT = ProductCategory.LIGHTING
CLIMATE = ProductCategory.CLIMATE
AV = ProductCategory.AUDIO_VIDEO
NET = ProductCategory.NETWORKING
ACCESS = ProductCategory.ACCESS_CONTROL


@dataclass(frozen=True)
class BudgetRange:
    min: float
    max: float


@dataclass(frozen=True)
class PersonaProfile:
    persona: Persona
    project_type: ProjectType
    keywords: tuple[str, ...]
    phrases: tuple[str, ...]
    context_clues: tuple[str, ...]
    preferred_tier: Tier
    confidence_boost: float
    priority_categories: tuple[ProductCategory, ...]
    budget_range: BudgetRange
    key_features: tuple[str, ...]
    preferred_strategy: str
    price_multiplier: float
    max_items: int
    include_installation: bool = True
    include_support: bool = True
    include_design_consulting: bool = False
    include_technical_consulting: bool = False

    @property
    def wants_consulting(self) -> bool:
        return self.include_design_consulting or self.include_technical_consulting


# ---------------------------------------------------------------------------
# Project type terms
# ---------------------------------------------------------------------------

RESIDENTIAL_TERMS: tuple[str, ...] = (
    "home", "house", "family", "personal", "residential", "homeowner",
    "living room", "bedroom", "kitchen", "garage", "basement", "attic",
    "backyard", "front yard", "neighborhood", "community",
)

COMMERCIAL_TERMS: tuple[str, ...] = (
    "office", "business", "commercial", "corporate", "enterprise", "company",
    "organization", "workplace", "facility", "building", "headquarters",
    "campus", "warehouse", "retail", "restaurant", "hotel",
)


# ---------------------------------------------------------------------------
# Persona table
# ---------------------------------------------------------------------------

_PROFILES: tuple[PersonaProfile, ...] = (
    # ---- Residential ----
    PersonaProfile(
        persona=Persona.HOMEOWNER,
        project_type=ProjectType.RESIDENTIAL,
        keywords=(
            "home", "house", "family", "kids", "children", "spouse", "wife", "husband",
            "security", "safety", "energy", "bills", "save money", "convenience",
            "living room", "bedroom", "kitchen", "garage", "yard", "neighborhood",
            "comfort", "lifestyle", "peace of mind", "property value",
        ),
        phrases=(
            "my home", "our house", "my family", "my kids", "energy savings",
            "home security", "peace of mind", "make life easier", "home value",
            "monthly bills", "utility costs", "family safety",
        ),
        context_clues=(
            "residential", "single family", "personal use", "family living",
            "homeowner", "mortgage", "property tax",
        ),
        preferred_tier=Tier.BETTER,
        confidence_boost=0.2,
        priority_categories=(SEC, LIGHT, CLIMATE, AV),
        budget_range=BudgetRange(5_000, 25_000),
        key_features=("easy-to-use", "family-friendly", "energy-efficient", "security-focused"),
        preferred_strategy="essential-plus-convenience",
        price_multiplier=1.0,
        max_items=12,
    ),
    PersonaProfile(
        persona=Persona.INTERIOR_DESIGNER,
        project_type=ProjectType.RESIDENTIAL,
        keywords=(
            "design", "aesthetic", "beautiful", "elegant", "sophisticated", "modern",
            "contemporary", "luxury", "high-end", "premium", "visual", "appearance",
            "style", "decor", "ambiance", "lighting scenes", "mood", "atmosphere",
            "client", "portfolio", "project", "showcase",
        ),
        phrases=(
            "design aesthetic", "visual appeal", "seamless integration", "hidden technology",
            "architectural elements", "lighting design", "interior design", "design vision",
            "client presentation", "design portfolio", "sophisticated look",
        ),
        context_clues=(
            "designer", "architect", "creative professional", "design firm",
            "client projects", "aesthetic requirements", "visual integration",
        ),
        preferred_tier=Tier.BEST,
        confidence_boost=0.3,
        priority_categories=(LIGHT, AV, ACCESS, CLIMATE),
        budget_range=BudgetRange(15_000, 75_000),
        key_features=("aesthetic-integration", "premium-finishes", "hidden-technology", "customizable"),
        preferred_strategy="premium-aesthetic",
        price_multiplier=1.25,
        max_items=18,
        include_design_consulting=True,
    ),
    PersonaProfile(
        persona=Persona.BUILDER,
        project_type=ProjectType.RESIDENTIAL,
        keywords=(
            "development", "construction", "build", "spec", "multiple", "units",
            "cost-effective", "budget", "efficient", "standard", "bulk", "volume",
            "installation", "schedule", "timeline", "contractor", "subcontractor",
            "market", "buyers", "sales", "competitive", "differentiation",
        ),
        phrases=(
            "spec homes", "development project", "multiple units", "bulk pricing",
            "installation efficiency", "market differentiation", "buyer appeal",
            "construction schedule", "cost per unit", "standardized systems",
        ),
        context_clues=(
            "builder", "developer", "construction company", "spec building",
            "residential development", "new construction", "volume pricing",
        ),
        preferred_tier=Tier.GOOD,
        confidence_boost=0.25,
        priority_categories=(SEC, LIGHT, NET, CLIMATE),
        budget_range=BudgetRange(2_500, 12_000),
        key_features=("cost-effective", "standardized", "bulk-pricing", "easy-installation"),
        preferred_strategy="volume-efficient",
        price_multiplier=0.85,
        max_items=10,
        include_installation=False,  # builders run their own install crews
    ),
    PersonaProfile(
        persona=Persona.ARCHITECT,
        project_type=ProjectType.RESIDENTIAL,
        keywords=(
            "architecture", "design", "technical", "specifications", "integration",
            "building systems", "infrastructure", "sustainable", "innovative",
            "future-proof", "scalable", "standards", "codes", "engineering",
            "BIM", "CAD", "documentation", "performance", "efficiency",
        ),
        phrases=(
            "building design", "system integration", "technical specifications",
            "architectural vision", "building performance", "sustainable design",
            "innovative technology", "future-proofing", "building codes",
            "system compatibility", "architectural elements",
        ),
        context_clues=(
            "architect", "architectural firm", "building design", "system integration",
            "technical requirements", "building performance", "design professional",
        ),
        preferred_tier=Tier.BEST,
        confidence_boost=0.3,
        priority_categories=(NET, LIGHT, CLIMATE, AV, SEC),
        budget_range=BudgetRange(20_000, 100_000),
        key_features=("future-proof", "scalable", "integration-ready", "sustainable"),
        preferred_strategy="comprehensive-integration",
        price_multiplier=1.15,
        max_items=25,
        include_technical_consulting=True,
    ),
    # ---- Commercial ----
    PersonaProfile(
        persona=Persona.CTO_CIO,
        project_type=ProjectType.COMMERCIAL,
        keywords=(
            "IT", "technology", "infrastructure", "network", "security", "cybersecurity",
            "scalability", "integration", "enterprise", "data", "analytics",
            "compliance", "protocols", "architecture", "systems", "platform",
            "cloud", "server", "database", "API", "technical", "strategic",
        ),
        phrases=(
            "IT infrastructure", "network security", "system integration",
            "enterprise architecture", "cybersecurity protocols", "data analytics",
            "technical requirements", "scalable systems", "platform integration",
            "security compliance", "technology strategy",
        ),
        context_clues=(
            "CTO", "CIO", "IT director", "technology officer", "chief information",
            "technical leadership", "enterprise technology", "IT department",
        ),
        preferred_tier=Tier.BEST,
        confidence_boost=0.4,
        priority_categories=(NET, SEC, ACCESS, AV),
        budget_range=BudgetRange(50_000, 250_000),
        key_features=("enterprise-grade", "scalable", "secure", "integration-ready"),
        preferred_strategy="enterprise-infrastructure",
        price_multiplier=1.3,
        max_items=30,
    ),
    PersonaProfile(
        persona=Persona.BUSINESS_OWNER,
        project_type=ProjectType.COMMERCIAL,
        keywords=(
            "business", "ROI", "investment", "profit", "revenue", "costs", "savings",
            "efficiency", "productivity", "operations", "competitive", "advantage",
            "customers", "growth", "expansion", "market", "success", "bottom line",
            "company", "organization", "team", "employees", "performance",
        ),
        phrases=(
            "return on investment", "business growth", "operational efficiency",
            "competitive advantage", "cost savings", "revenue increase",
            "business operations", "customer experience", "market position",
            "business success", "company performance",
        ),
        context_clues=(
            "business owner", "entrepreneur", "company founder", "CEO",
            "small business", "medium business", "business operations",
        ),
        preferred_tier=Tier.BETTER,
        confidence_boost=0.3,
        priority_categories=(SEC, AV, LIGHT, ACCESS),
        budget_range=BudgetRange(10_000, 50_000),
        key_features=("roi-focused", "operational-efficiency", "customer-experience", "cost-effective"),
        preferred_strategy="business-optimization",
        price_multiplier=1.1,
        max_items=15,
    ),
    PersonaProfile(
        persona=Persona.C_SUITE,
        project_type=ProjectType.COMMERCIAL,
        keywords=(
            "strategic", "executive", "leadership", "vision", "corporate", "enterprise",
            "stakeholders", "shareholders", "board", "long-term",
            "market", "positioning", "competitive", "industry", "innovation",
            "transformation", "digital", "modernization", "investment", "capital",
        ),
        phrases=(
            "strategic initiative", "executive decision", "corporate strategy",
            "market positioning", "competitive positioning", "strategic advantage",
            "long-term vision", "stakeholder value", "corporate transformation",
            "strategic investment", "executive leadership",
        ),
        context_clues=(
            "CEO", "CFO", "COO", "executive", "c-level", "senior leadership",
            "corporate executive", "strategic decision maker",
        ),
        preferred_tier=Tier.BEST,
        confidence_boost=0.4,
        priority_categories=(AV, LIGHT, SEC, ACCESS, CLIMATE),
        budget_range=BudgetRange(25_000, 150_000),
        key_features=("premium", "executive-focused", "impressive", "strategic-value"),
        preferred_strategy="executive-premium",
        price_multiplier=1.4,
        max_items=20,
    ),
    PersonaProfile(
        persona=Persona.OFFICE_MANAGER,
        project_type=ProjectType.COMMERCIAL,
        keywords=(
            "office", "workplace", "employees", "staff", "team", "productivity",
            "efficiency", "comfort", "environment", "management", "operations",
            "daily", "routine", "administration", "facilities", "maintenance",
            "costs", "budget", "simple", "easy", "user-friendly",
        ),
        phrases=(
            "office operations", "employee productivity", "workplace efficiency",
            "staff comfort", "office environment", "daily operations",
            "administrative tasks", "office management", "cost control",
            "easy to use", "simple operation",
        ),
        context_clues=(
            "office manager", "administrative manager", "operations manager",
            "office administration", "workplace management",
        ),
        preferred_tier=Tier.BETTER,
        confidence_boost=0.25,
        priority_categories=(LIGHT, CLIMATE, AV, SEC),
        budget_range=BudgetRange(8_000, 35_000),
        key_features=("user-friendly", "energy-efficient", "low-maintenance", "productivity-focused"),
        preferred_strategy="workplace-efficiency",
        price_multiplier=1.0,
        max_items=12,
    ),
    PersonaProfile(
        persona=Persona.FACILITIES_MANAGER,
        project_type=ProjectType.COMMERCIAL,
        keywords=(
            "facilities", "building", "maintenance", "systems", "HVAC", "lighting",
            "energy", "monitoring", "control", "operations", "efficiency",
            "reliability", "performance", "technical", "mechanical", "electrical",
            "preventive", "scheduling", "compliance", "safety", "management",
        ),
        phrases=(
            "building management", "facility operations", "maintenance efficiency",
            "energy management", "system monitoring", "building systems",
            "preventive maintenance", "facility management", "operational control",
            "building performance", "system reliability",
        ),
        context_clues=(
            "facilities manager", "building manager", "facility operations",
            "building maintenance", "facility management", "property management",
        ),
        preferred_tier=Tier.BETTER,
        confidence_boost=0.3,
        priority_categories=(CLIMATE, LIGHT, SEC, NET),
        budget_range=BudgetRange(15_000, 60_000),
        key_features=("reliable", "monitoring-capable", "maintenance-friendly", "energy-efficient"),
        preferred_strategy="facilities-optimization",
        price_multiplier=1.05,
        max_items=18,
    ),
)

PERSONA_PROFILES: dict[Persona, PersonaProfile] = {p.persona: p for p in _PROFILES}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_persona_table(profiles: dict[Persona, PersonaProfile]) -> None:
    """
    Check the persona table for completeness.

    Raises:
        PersonaTableError: listing every problem found
    """
    problems: list[str] = []

    missing = [p.value for p in Persona if p not in profiles]
    if missing:
        problems.append(f"personas without a profile: {', '.join(missing)}")

    for persona, profile in profiles.items():
        name = persona.value
        if not profile.keywords or not profile.phrases or not profile.context_clues:
            problems.append(f"{name}: keyword, phrase and context lists must all be non-empty")
        if not 0.0 <= profile.confidence_boost <= 1.0:
            problems.append(f"{name}: confidence_boost {profile.confidence_boost} outside [0, 1]")
        if profile.preferred_strategy not in STRATEGIES:
            problems.append(f"{name}: unknown bundle strategy {profile.preferred_strategy!r}")
        if profile.budget_range.min > profile.budget_range.max:
            problems.append(f"{name}: budget range min exceeds max")
        if profile.max_items < 1 or profile.price_multiplier <= 0:
            problems.append(f"{name}: max_items and price_multiplier must be positive")

    for project_type in ProjectType:
        if not any(p.project_type == project_type for p in profiles.values()):
            problems.append(f"no persona eligible for {project_type.value} projects")

    if problems:
        raise PersonaTableError("Persona table invalid: " + "; ".join(problems))


validate_persona_table(PERSONA_PROFILES)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def parse_persona(value: Union[str, Persona]) -> Persona:
    """Resolve a persona id, raising UnknownPersonaError for anything unknown."""
    if isinstance(value, Persona):
        return value
    try:
        return Persona(str(value).strip().lower())
    except ValueError:
        raise UnknownPersonaError(str(value)) from None


def get_profile(persona: Union[str, Persona]) -> PersonaProfile:
    return PERSONA_PROFILES[parse_persona(persona)]


def is_valid_persona(value: str) -> bool:
    try:
        parse_persona(value)
    except UnknownPersonaError:
        return False
    return True


def eligible_personas(project_type: ProjectType) -> list[PersonaProfile]:
    """Profiles applicable to a project type, in table order."""
    return [p for p in _PROFILES if p.project_type == project_type]

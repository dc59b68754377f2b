"""
models.py - Data model for persona detection and Good/Better/Best bundles.

Every record produced by the pipeline is a frozen dataclass. Anything that
persists results serializes them through ``to_dict()``, which carries
SCHEMA_VERSION so stored payloads can be migrated later.
"""

import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional

SCHEMA_VERSION = 1


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Persona(str, Enum):
    # Residential
    HOMEOWNER = "homeowner"
    INTERIOR_DESIGNER = "interior-designer"
    BUILDER = "builder"
    ARCHITECT = "architect"
    # Commercial
    CTO_CIO = "cto-cio"
    BUSINESS_OWNER = "business-owner"
    C_SUITE = "c-suite"
    OFFICE_MANAGER = "office-manager"
    FACILITIES_MANAGER = "facilities-manager"


class ProjectType(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"


class Tier(str, Enum):
    GOOD = "good"
    BETTER = "better"
    BEST = "best"


class ProductCategory(str, Enum):
    SECURITY = "security"
    LIGHTING = "lighting"
    CLIMATE = "climate"
    AUDIO_VIDEO = "audio-video"
    NETWORKING = "networking"
    ACCESS_CONTROL = "access-control"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str) -> "ProductCategory":
        """Map a catalog category string onto the enum; unknown values become OTHER."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


# Detection method tags
METHOD_RULE_BASED = "rule-based"
METHOD_AI = "ai"
METHOD_COMBINED = "combined"

# Combination policy tags
COMBINED_RULE_ONLY = "rule-based-only"
COMBINED_AI_PRIMARY = "ai-primary"
COMBINED_RULE_PRIMARY = "rule-based-primary"
COMBINED_WEIGHTED = "weighted-average"


def clamp_confidence(value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        return 0.0
    return min(max(value, 0.0), 1.0)


def _serialize(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


def _scores_as_dict(data: dict) -> dict:
    data["detailed_scores"] = dict(data["detailed_scores"])
    for key in ("rule_based_backup", "ai_backup"):
        if data.get(key) is not None:
            data[key] = _scores_as_dict(data[key])
    return data


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PersonaCandidate:
    persona: Persona
    confidence: float


@dataclass(frozen=True)
class DetectionResult:
    persona: Persona
    confidence: float                           # clamped to [0, 1]
    method: str                                 # rule-based | ai | combined
    project_type: ProjectType = ProjectType.RESIDENTIAL
    combined_method: Optional[str] = None       # set by PersonaDetector
    reasoning: Optional[str] = None
    key_indicators: tuple[str, ...] = ()
    alternatives: tuple[PersonaCandidate, ...] = ()
    detailed_scores: tuple[tuple[str, float], ...] = ()
    rule_based_backup: Optional["DetectionResult"] = None
    ai_backup: Optional["DetectionResult"] = None

    def __post_init__(self):
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))
        object.__setattr__(self, "key_indicators", tuple(self.key_indicators))
        object.__setattr__(self, "alternatives", tuple(self.alternatives[:2]))

    def to_dict(self) -> dict:
        return _scores_as_dict(_serialize(asdict(self)))


@dataclass(frozen=True)
class PersonaDetectionRequest:
    text: Optional[str] = None
    voice_transcript: Optional[str] = None
    additional_context: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Product:
    id: str
    name: str
    category: ProductCategory
    base_price: float
    description: str = ""
    brand: str = ""
    good_tier_price: Optional[float] = None
    better_tier_price: Optional[float] = None
    best_tier_price: Optional[float] = None
    is_active: bool = True

    def price_for_tier(self, tier: Tier) -> float:
        """Tier price, falling back to the base price scaled for the tier."""
        if tier == Tier.GOOD:
            return self.good_tier_price or self.base_price
        if tier == Tier.BETTER:
            return self.better_tier_price or self.base_price * 1.15
        return self.best_tier_price or self.base_price * 1.35

    @property
    def search_text(self) -> str:
        return f"{self.name} {self.description}".lower()

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """Build from a catalog record; accepts snake_case or camelCase keys."""
        def pick(*keys, default=None):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return default

        def price(*keys) -> Optional[float]:
            value = pick(*keys)
            return float(value) if value is not None else None

        return cls(
            id=str(pick("id", "sku", default=data.get("name", ""))),
            name=str(pick("name", default="")),
            description=str(pick("description", default="")),
            category=ProductCategory.parse(pick("category", default="other")),
            brand=str(pick("brand", default="")),
            base_price=float(pick("base_price", "basePrice", default=0.0)),
            good_tier_price=price("good_tier_price", "goodTierPrice"),
            better_tier_price=price("better_tier_price", "betterTierPrice"),
            best_tier_price=price("best_tier_price", "bestTierPrice"),
            is_active=bool(pick("is_active", "isActive", default=True)),
        )


# ---------------------------------------------------------------------------
# Recommendation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BundleStrategy:
    name: str
    description: str
    approach: str
    categories: tuple[ProductCategory, ...]
    distribution: dict                          # ProductCategory -> percentage

    @property
    def total_percentage(self) -> float:
        return sum(self.distribution.values())


@dataclass(frozen=True)
class RecommendationItem:
    name: str
    category: str
    unit_price: float
    tier: Tier
    product_id: Optional[str] = None            # None for synthesized items
    description: str = ""
    brand: str = ""
    quantity: int = 1
    reasoning: str = ""
    relevance_score: float = 0.0
    is_dependency: bool = False
    tier_justification: Optional[str] = None
    competitive_edge: Optional[str] = None

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class TierBundle:
    tier: Tier
    items: tuple[RecommendationItem, ...]
    total: float
    value_proposition: str = ""
    competitive_advantage: str = ""

    @property
    def item_count(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class BudgetFit:
    percentage: int
    status: str                                 # within-budget | close-fit | over-budget
    difference: float
    range_label: str


@dataclass(frozen=True)
class RecommendationResult:
    persona: Persona
    bundle_strategy: str
    good_tier: TierBundle
    better_tier: TierBundle
    best_tier: TierBundle
    recommended_tier: Tier
    persona_confidence: float = 1.0
    competitive_advantage: Optional[str] = None
    budget_fit: Optional[BudgetFit] = None
    warnings: tuple[str, ...] = ()

    @property
    def estimated_total(self) -> float:
        return self.better_tier.total

    @property
    def tiers(self) -> tuple[TierBundle, TierBundle, TierBundle]:
        return self.good_tier, self.better_tier, self.best_tier

    def to_dict(self) -> dict:
        return {
            "schema_version": SCHEMA_VERSION,
            "persona": self.persona.value,
            "persona_confidence": self.persona_confidence,
            "bundle_strategy": self.bundle_strategy,
            "recommendations": {
                "good_tier": _serialize(asdict(self.good_tier)),
                "better_tier": _serialize(asdict(self.better_tier)),
                "best_tier": _serialize(asdict(self.best_tier)),
                "recommended_tier": self.recommended_tier.value,
                "estimated_total": self.estimated_total,
            },
            "competitive_advantage": self.competitive_advantage,
            "budget_fit": asdict(self.budget_fit) if self.budget_fit else None,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class RecommendationRequest:
    persona: str
    persona_confidence: Optional[float] = None
    voice_transcript: Optional[str] = None
    budget: Optional[float] = None
    project_size: Optional[float] = None
    urgency: Optional[str] = None               # low | medium | high
    specific_requirements: tuple[str, ...] = ()

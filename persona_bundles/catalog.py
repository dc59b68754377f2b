"""
catalog.py - Product catalog providers with a static fallback

The live catalog is owned elsewhere (CRM database, distributor feed); this
module only reads it. Providers:
  - HTTPCatalogProvider: GET a JSON product list
  - FileCatalogProvider: YAML or JSON product list on disk
  - StaticCatalogProvider: the in-process FALLBACK_CATALOG

FallbackCatalog wraps a primary provider and switches to the static
catalog on any error or empty result, so recommendations can always be
built with zero live dependencies.

Usage:
    from persona_bundles.catalog import FallbackCatalog, HTTPCatalogProvider
    catalog = FallbackCatalog(HTTPCatalogProvider("https://crm.example.com/api/products"))
    products = await catalog.load()
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from persona_bundles.config import Settings
from persona_bundles.exceptions import CatalogError, NoProductsAvailableError
from persona_bundles.models import Product, ProductCategory

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10.0   # seconds


def _p(pid, name, category, brand, description, good, better, best) -> Product:
    return Product(
        id=pid,
        name=name,
        category=category,
        brand=brand,
        description=description,
        base_price=good,
        good_tier_price=good,
        better_tier_price=better,
        best_tier_price=best,
    )


SEC = ProductCategory.SECURITY
LIGHT = ProductCategory.LIGHTING
CLIMATE = ProductCategory.CLIMATE
AV = ProductCategory.AUDIO_VIDEO
NET = ProductCategory.NETWORKING
ACCESS = ProductCategory.ACCESS_CONTROL

FALLBACK_CATALOG: tuple[Product, ...] = (
    # ---- Security ----
    _p("luma-x20-dome", "Luma x20 4MP Dome Camera", SEC, "Luma",
       "PoE IP dome camera with night vision, IP65 rated for exterior locations", 329, 389, 469),
    _p("doorbird-d2101v", "DoorBird IP Video Door Station", SEC, "DoorBird",
       "Two-way video intercom with Control4 driver included", 499, 579, 699),
    _p("luma-nvr-16", "Luma 16-Channel NVR", SEC, "Luma",
       "16-channel network video recorder, 4TB storage, 30-day retention", 899, 1049, 1299),
    _p("yale-assure-lock", "Yale Assure Smart Door Lock", SEC, "Yale",
       "Keyless entry smart lock, easy to use with mobile app control", 249, 299, 379),
    _p("qolsys-motion", "Qolsys IQ Motion Sensor", SEC, "Qolsys",
       "Wireless pet-immune motion sensor with easy installation", 59, 75, 99),
    # ---- Lighting ----
    _p("lutron-rra3-dimmer", "Lutron RadioRA 3 Dimmer", LIGHT, "Lutron",
       "Energy efficient LED dimming with scene control", 189, 219, 259),
    _p("lutron-rra3-keypad", "Lutron RadioRA 3 Scene Keypad", LIGHT, "Lutron",
       "Customizable engraved scene keypad", 249, 289, 349),
    _p("lutron-rra3-processor", "Lutron RadioRA 3 Processor", LIGHT, "Lutron",
       "Whole-home lighting processor, integration ready for Control4", 699, 799, 949),
    _p("lutron-palladiom-shade", "Lutron Palladiom Motorized Shade", LIGHT, "Lutron",
       "Whisper-quiet motorized shade with hidden technology and premium finishes", 1199, 1399, 1699),
    # ---- Climate ----
    _p("aprilaire-iaq-sensor", "Aprilaire Indoor Air Quality Sensor", CLIMATE, "Aprilaire",
       "Monitors humidity, VOCs and CO2 for healthier air", 199, 239, 289),
    _p("ecobee-premium", "Ecobee Smart Thermostat Premium", CLIMATE, "Ecobee",
       "Energy efficient thermostat with room sensors and air quality monitoring", 249, 299, 379),
    _p("control4-hvac-driver", "Control4 Thermostat Integration", CLIMATE, "Control4",
       "HVAC scheduling and scene-based temperature control via Control4 driver", 350, 420, 520),
    # ---- Audio / Video ----
    _p("triad-bronze-pair", "Triad Bronze In-Ceiling Speaker Pair", AV, "Triad",
       "6.5 inch in-ceiling speakers with paintable grilles", 449, 529, 649),
    _p("triad-one-amp", "Triad One Streaming Amplifier", AV, "Triad",
       "Single-zone streaming amplifier for whole-home audio", 799, 899, 1099),
    _p("sonos-arc", "Sonos Arc Soundbar", AV, "Sonos",
       "Premium wireless soundbar with Dolby Atmos", 899, 999, 1199),
    _p("samsung-q90-75", "Samsung 75in QLED 4K Display", AV, "Samsung",
       "Ultra-premium 4K display with quantum dot technology", 2799, 3199, 3799),
    # ---- Networking ----
    _p("araknis-710-ap", "Araknis 710 WiFi Access Point", NET, "Araknis",
       "Enterprise-grade WiFi 6 access point, scalable whole-home coverage", 349, 399, 479),
    _p("araknis-310-router", "Araknis 310 Router", NET, "Araknis",
       "Managed router with QoS for AV and IoT prioritization", 399, 449, 549),
    _p("araknis-310-switch", "Araknis 310 PoE Switch", NET, "Araknis",
       "Managed PoE switch for cameras, Control4 devices and WAPs", 549, 629, 749),
    # ---- Access control ----
    _p("hid-signo-reader", "HID Signo Keypad Reader", ACCESS, "HID",
       "Secure keypad and mobile credential reader", 389, 449, 549),
    _p("2n-ip-verso", "2N IP Verso Intercom", ACCESS, "2N",
       "Modular IP intercom with customizable modules", 1099, 1249, 1499),
    _p("brivo-acs300", "Brivo ACS300 Door Controller", ACCESS, "Brivo",
       "Enterprise-grade cloud access controller, scalable to multiple sites", 1299, 1499, 1799),
)


def sort_products(products: list[Product]) -> list[Product]:
    """Active products ordered by category, then base price."""
    active = [p for p in products if p.is_active]
    return sorted(active, key=lambda p: (p.category.value, p.base_price))


def _products_from_payload(payload: Any, source: str) -> list[Product]:
    if isinstance(payload, dict):
        payload = payload.get("products", payload.get("data"))
    if not isinstance(payload, list):
        raise CatalogError(f"Catalog payload from {source} is not a product list")
    try:
        return [Product.from_dict(record) for record in payload]
    except (TypeError, ValueError, AttributeError) as e:
        raise CatalogError(f"Malformed product record from {source}: {e}") from e


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class CatalogProvider(ABC):
    """Read-only source of products."""

    @abstractmethod
    async def list_active_products(self) -> list[Product]:
        """Return active products. Raises CatalogError on failure."""


class StaticCatalogProvider(CatalogProvider):
    def __init__(self, products: Optional[tuple[Product, ...]] = None):
        self.products = tuple(FALLBACK_CATALOG if products is None else products)

    async def list_active_products(self) -> list[Product]:
        return sort_products(list(self.products))


class FileCatalogProvider(CatalogProvider):
    """Loads a YAML (or JSON) list of product records."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> Any:
        if not self.path.exists():
            raise CatalogError(f"Catalog file not found: {self.path}")
        try:
            with open(self.path, encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CatalogError(f"Catalog file unreadable: {self.path}: {e}") from e

    async def list_active_products(self) -> list[Product]:
        loop = asyncio.get_running_loop()
        payload = await loop.run_in_executor(None, self._read)
        products = sort_products(_products_from_payload(payload, str(self.path)))
        logger.debug("Loaded %d products from %s", len(products), self.path)
        return products


class HTTPCatalogProvider(CatalogProvider):
    """Fetches the product list from a CRM endpoint in one request."""

    def __init__(
        self,
        url: str,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def list_active_products(self) -> list[Product]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as http:
                resp = await http.get(self.url, params={"isActive": "true"})
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogError(f"Catalog fetch from {self.url} failed: {e}") from e
        products = sort_products(_products_from_payload(payload, self.url))
        logger.debug("Fetched %d products from %s", len(products), self.url)
        return products


# ---------------------------------------------------------------------------
# Fallback wrapper
# ---------------------------------------------------------------------------

class FallbackCatalog:
    """Primary provider with the static catalog behind it."""

    def __init__(
        self,
        primary: Optional[CatalogProvider] = None,
        fallback: Optional[CatalogProvider] = None,
    ):
        self.primary = primary
        self.fallback = fallback or StaticCatalogProvider()

    async def load(self) -> list[Product]:
        """
        Return active products, preferring the primary provider.

        Raises:
            NoProductsAvailableError: if the fallback catalog is empty too
        """
        if self.primary is not None:
            try:
                products = await self.primary.list_active_products()
                if products:
                    return products
                logger.warning("Primary catalog returned no products; using fallback catalog")
            except Exception as e:
                logger.error("Catalog error, using fallback catalog: %s", e)

        products = await self.fallback.list_active_products()
        if not products:
            raise NoProductsAvailableError("No products available from live or fallback catalog")
        return products


def build_catalog(settings: Settings) -> FallbackCatalog:
    if settings.catalog_url:
        return FallbackCatalog(HTTPCatalogProvider(settings.catalog_url, timeout=settings.catalog_timeout))
    if settings.catalog_file:
        return FallbackCatalog(FileCatalogProvider(settings.catalog_file))
    logger.info("No live catalog configured; using static catalog")
    return FallbackCatalog()

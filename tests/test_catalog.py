"""Tests for catalog providers and the static fallback."""

import json

import httpx
import pytest

from persona_bundles.catalog import (
    FALLBACK_CATALOG,
    CatalogProvider,
    FallbackCatalog,
    FileCatalogProvider,
    HTTPCatalogProvider,
    StaticCatalogProvider,
    build_catalog,
)
from persona_bundles.config import Settings
from persona_bundles.exceptions import CatalogError, NoProductsAvailableError
from persona_bundles.models import Product, ProductCategory, Tier

RECORDS = [
    {"id": 1, "name": "Araknis 310 Router", "category": "networking", "basePrice": 399, "isActive": True},
    {"id": 2, "name": "Luma x20 Camera", "category": "security", "basePrice": 329,
     "betterTierPrice": 389, "isActive": True},
    {"id": 3, "name": "Retired Keypad", "category": "lighting", "basePrice": 99, "isActive": False},
    {"id": 4, "name": "Mystery Box", "category": "gizmos", "basePrice": 10},
]


class FailingProvider(CatalogProvider):
    async def list_active_products(self):
        raise CatalogError("database unreachable")


class EmptyProvider(CatalogProvider):
    async def list_active_products(self):
        return []


class TestProduct:
    def test_from_camel_case_record(self):
        product = Product.from_dict(RECORDS[1])
        assert product.id == "2"
        assert product.category == ProductCategory.SECURITY
        assert product.price_for_tier(Tier.GOOD) == 329
        assert product.price_for_tier(Tier.BETTER) == 389
        assert product.price_for_tier(Tier.BEST) == pytest.approx(329 * 1.35)

    def test_unknown_category_is_other(self):
        assert Product.from_dict(RECORDS[3]).category == ProductCategory.OTHER


class TestStaticCatalog:
    @pytest.mark.asyncio
    async def test_sorted_by_category_then_price(self):
        products = await StaticCatalogProvider().list_active_products()
        keys = [(p.category.value, p.base_price) for p in products]
        assert keys == sorted(keys)
        assert len(products) == len(FALLBACK_CATALOG)

    def test_fallback_catalog_covers_every_strategy_category(self):
        categories = {p.category for p in FALLBACK_CATALOG}
        assert categories == set(ProductCategory) - {ProductCategory.OTHER}


class TestHTTPCatalog:
    @pytest.mark.asyncio
    async def test_fetches_active_products(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["isActive"] == "true"
            return httpx.Response(200, json={"products": RECORDS})

        provider = HTTPCatalogProvider("https://crm.test/api/products", transport=httpx.MockTransport(handler))
        products = await provider.list_active_products()
        assert [p.name for p in products] == ["Araknis 310 Router", "Mystery Box", "Luma x20 Camera"]

    @pytest.mark.asyncio
    async def test_server_error_raises_catalog_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        provider = HTTPCatalogProvider("https://crm.test/api/products", transport=transport)
        with pytest.raises(CatalogError):
            await provider.list_active_products()

    @pytest.mark.asyncio
    async def test_non_list_payload_raises_catalog_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"status": "ok"}))
        provider = HTTPCatalogProvider("https://crm.test/api/products", transport=transport)
        with pytest.raises(CatalogError):
            await provider.list_active_products()


class TestFileCatalog:
    @pytest.mark.asyncio
    async def test_yaml_file(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "products:\n"
            "  - id: dimmer\n"
            "    name: Lutron Dimmer\n"
            "    category: lighting\n"
            "    base_price: 189\n"
        )
        products = await FileCatalogProvider(path).list_active_products()
        assert products[0].name == "Lutron Dimmer"
        assert products[0].category == ProductCategory.LIGHTING

    @pytest.mark.asyncio
    async def test_json_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(RECORDS))
        products = await FileCatalogProvider(path).list_active_products()
        assert len(products) == 3

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            await FileCatalogProvider(tmp_path / "nope.yaml").list_active_products()

    @pytest.mark.asyncio
    async def test_unreadable_yaml(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("products: [unclosed\n")
        with pytest.raises(CatalogError):
            await FileCatalogProvider(path).list_active_products()


class TestFallbackCatalog:
    """Primary provider errors and empty results fall back to the static catalog."""

    @pytest.mark.asyncio
    async def test_primary_used_when_healthy(self):
        primary = StaticCatalogProvider((Product("only", "Only Product", ProductCategory.SECURITY, 10),))
        products = await FallbackCatalog(primary).load()
        assert [p.id for p in products] == ["only"]

    @pytest.mark.asyncio
    async def test_primary_failure_uses_fallback(self, caplog):
        products = await FallbackCatalog(FailingProvider()).load()
        assert len(products) == len(FALLBACK_CATALOG)
        assert "using fallback catalog" in caplog.text

    @pytest.mark.asyncio
    async def test_primary_empty_uses_fallback(self):
        products = await FallbackCatalog(EmptyProvider()).load()
        assert len(products) == len(FALLBACK_CATALOG)

    @pytest.mark.asyncio
    async def test_both_empty_raises(self):
        with pytest.raises(NoProductsAvailableError):
            await FallbackCatalog(EmptyProvider(), StaticCatalogProvider(())).load()


class TestBuildCatalog:
    def test_http_when_url_configured(self):
        catalog = build_catalog(Settings(catalog_url="https://crm.test/api/products"))
        assert isinstance(catalog.primary, HTTPCatalogProvider)

    def test_file_when_path_configured(self, tmp_path):
        catalog = build_catalog(Settings(catalog_file=tmp_path / "catalog.yaml"))
        assert isinstance(catalog.primary, FileCatalogProvider)

    def test_static_only_by_default(self):
        assert build_catalog(Settings()).primary is None

"""Tests for the HTTP routes."""

import pytest
from fastapi.testclient import TestClient

from conftest import BUILDER_TEXT, HOMEOWNER_TEXT
from persona_bundles.advisor import ProposalAdvisor
from persona_bundles.api import create_app
from persona_bundles.persona_detector import PersonaDetector
from persona_bundles.recommendation_engine import RecommendationEngine


@pytest.fixture
def client(advisor):
    return TestClient(create_app(advisor))


class TestDetectRoute:
    def test_detects_homeowner(self, client):
        resp = client.post("/api/persona-detection/detect", json={"text": HOMEOWNER_TEXT})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["persona"] == "homeowner"
        assert data["combined_method"] == "rule-based-only"
        assert 0 <= data["confidence"] <= 1

    def test_empty_input_is_400(self, client):
        resp = client.post("/api/persona-detection/detect", json={})
        assert resp.status_code == 400
        assert resp.json()["success"] is False


class TestGenerateRoute:
    def test_explicit_persona(self, client):
        resp = client.post("/api/product-recommendations/generate",
                           json={"persona": "homeowner", "budget": 15_000})
        assert resp.status_code == 200
        body = resp.json()
        assert body["data"]["recommendations"]["recommended_tier"] == "better"
        assert body["metadata"]["persona_detection"]["detected"] is False

    def test_persona_detected_from_description(self, client):
        resp = client.post("/api/product-recommendations/generate", json={"description": BUILDER_TEXT})
        assert resp.status_code == 200
        detection = resp.json()["metadata"]["persona_detection"]
        assert detection["detected"] is True
        assert detection["persona"] == "builder"

    def test_transcript_enriches_request(self, client):
        resp = client.post("/api/product-recommendations/generate", json={"voice_transcript": HOMEOWNER_TEXT})
        metadata = resp.json()["metadata"]
        assert metadata["budget"] == 15_000
        assert metadata["urgency"] == "medium"

    def test_defaults_to_homeowner(self, client):
        resp = client.post("/api/product-recommendations/generate", json={})
        assert resp.status_code == 200
        detection = resp.json()["metadata"]["persona_detection"]
        assert detection["persona"] == "homeowner"
        assert detection["confidence"] == 0.5

    def test_unknown_persona_is_400(self, client):
        resp = client.post("/api/product-recommendations/generate", json={"persona": "astronaut"})
        assert resp.status_code == 400

    def test_invalid_budget_is_422(self, client):
        resp = client.post("/api/product-recommendations/generate", json={"persona": "homeowner", "budget": -5})
        assert resp.status_code == 422

    def test_no_products_is_503(self, empty_catalog):
        advisor = ProposalAdvisor(PersonaDetector(), RecommendationEngine(empty_catalog))
        resp = TestClient(create_app(advisor)).post(
            "/api/product-recommendations/generate", json={"persona": "homeowner"}
        )
        assert resp.status_code == 503


class TestReferenceRoutes:
    def test_bundles(self, client):
        resp = client.get("/api/product-recommendations/bundles/builder", params={"budget": 12_000})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert set(data["bundles"]) == {"good", "better", "best"}
        assert data["recommended_tier"] == "good"

    def test_personas(self, client):
        resp = client.get("/api/product-recommendations/personas")
        assert resp.status_code == 200
        assert resp.json()["data"]["total_personas"] == 9

    def test_pricing(self, client):
        resp = client.get("/api/product-recommendations/pricing/homeowner/best", params={"budget": 20_000})
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["tier_alignment"] == "upgrade"
        assert data["budget_fit"]["status"] == "optimal"

    def test_pricing_invalid_tier(self, client):
        assert client.get("/api/product-recommendations/pricing/homeowner/platinum").status_code == 400

    def test_pricing_unknown_persona(self, client):
        assert client.get("/api/product-recommendations/pricing/astronaut/good").status_code == 400

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["ok"] is True

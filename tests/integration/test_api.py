"""
TIPSTREAM - Integration Tests
API endpoint tests against in-memory storage and a fake generator
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from tipstream.api.dependencies import get_match_store
from tipstream.main import app
from tipstream.models.models import PredictionCategory
from tipstream.models.schemas import ExpressBet, Express3Prediction, SinglePrediction
from tipstream.services.container import build_services, set_services

pytestmark = pytest.mark.integration


@pytest.fixture
async def services(db, test_settings):
    services = build_services(test_settings, db=db)
    services.engine.llm = MagicMock()
    services.engine.llm.generate = AsyncMock()
    services.engine.search = None
    set_services(services)
    yield services
    set_services(None)
    app.dependency_overrides.clear()
    await services.close()


@pytest.fixture
async def async_client(services):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


class TestMatchEndpoints:
    """Test the cached match list."""

    @pytest.mark.asyncio
    async def test_empty_cache(self, async_client):
        response = await async_client.get("/api/matches")
        assert response.status_code == 200
        assert response.json() == {"matches": []}

    @pytest.mark.asyncio
    async def test_matches_use_camel_case(self, async_client, services, sample_matches):
        await services.match_store.replace(sample_matches)

        response = await async_client.get("/api/matches")

        matches = response.json()["matches"]
        assert len(matches) == len(sample_matches)
        first = matches[0]
        assert first["homeTeam"] == "Arsenal"
        assert first["awayTeam"] == "Chelsea"
        assert first["odds"] == {"home": 1.55, "draw": 4.1, "away": 5.6}
        assert first["date"] == "2026-10-19"


class TestPoolEndpoints:
    """Test random draws from the prediction pool."""

    @pytest.mark.asyncio
    async def test_single_empty_pool(self, async_client):
        response = await async_client.post("/api/single")

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "NO_PREDICTIONS"
        assert "try again" in body["message"]

    @pytest.mark.asyncio
    async def test_single_with_companion_analysis(self, async_client, services):
        await services.pool_store.replace(PredictionCategory.SINGLE, [
            SinglePrediction(match="Arsenal - Chelsea", prediction="Победа хозяев", odds=1.55, confidence=80)
        ])

        response = await async_client.post("/api/single")

        assert response.status_code == 200
        body = response.json()
        assert body["prediction"]["match"] == "Arsenal - Chelsea"
        assert body["matchAnalysis"] == {
            "match": "Arsenal - Chelsea",
            "prediction": "Победа хозяев",
            "riskPercent": 25,
            "odds": 1.55,
        }

    @pytest.mark.asyncio
    async def test_express3(self, async_client, services):
        bets = [ExpressBet(match=f"Team{i} - Club{i}", prediction="П1", odds=1.5) for i in range(3)]
        await services.pool_store.replace(PredictionCategory.EXPRESS3, [
            Express3Prediction(bets=bets, total_odds=3.38, confidence=60)
        ])

        response = await async_client.post("/api/express3")

        assert response.status_code == 200
        assert len(response.json()["bets"]) == 3

    @pytest.mark.asyncio
    async def test_pool_counts(self, async_client):
        response = await async_client.get("/api/pool")
        assert response.json() == {"counts": {"single": 0, "express3": 0, "express5": 0}}


class TestAnalyzeEndpoint:
    """Test on-demand analysis."""

    @pytest.mark.asyncio
    async def test_analyze(self, async_client, services):
        services.engine.llm.generate.return_value = json.dumps({
            "match": "Arsenal - Chelsea", "prediction": "Победа хозяев", "riskPercent": 150, "odds": 0,
        }, ensure_ascii=False)

        response = await async_client.post("/api/analyze", json={"match": "Arsenal - Chelsea", "league": "АПЛ"})

        assert response.status_code == 200
        assert response.json() == {
            "match": "Arsenal - Chelsea",
            "prediction": "Победа хозяев",
            "riskPercent": 50,
            "odds": 2.0,
        }

    @pytest.mark.asyncio
    async def test_analyze_rejects_short_match(self, async_client, services):
        response = await async_client.post("/api/analyze", json={"match": "ab"})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_INPUT"
        services.engine.llm.generate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generator_garbage_is_502(self, async_client, services):
        services.engine.llm.generate.return_value = "not json"

        response = await async_client.post("/api/analyze", json={"match": "Arsenal - Chelsea"})

        assert response.status_code == 502
        assert response.json()["error"] == "OPENAI_INVALID_JSON"


class TestAdminEndpoints:
    """Test the source URL registry endpoints."""

    @pytest.mark.asyncio
    async def test_set_and_get_sources(self, async_client):
        response = await async_client.put(
            "/api/admin/sources", json={"urls": [" https://a.example/football ", "https://b.example"]}
        )
        assert response.status_code == 200
        assert response.json() == {"success": True, "urls": ["https://a.example/football", "https://b.example"]}

        response = await async_client.get("/api/admin/sources")
        assert response.json() == {"urls": ["https://a.example/football", "https://b.example"]}

    @pytest.mark.asyncio
    async def test_invalid_url(self, async_client):
        response = await async_client.put("/api/admin/sources", json={"urls": ["javascript:alert(1)"]})

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_URL"


class TestHealthAndErrors:
    """Test health reporting and the generic error body."""

    @pytest.mark.asyncio
    async def test_health(self, async_client):
        response = await async_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"]["status"] == "healthy"
        assert body["scheduler"]["enabled"] is False

    @pytest.mark.asyncio
    async def test_unexpected_error_is_500(self, services):
        broken = MagicMock()
        broken.read = AsyncMock(side_effect=RuntimeError("disk on fire"))
        app.dependency_overrides[get_match_store] = lambda: broken

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/matches")

        assert response.status_code == 500
        assert response.json() == {"error": "INTERNAL_ERROR", "message": "An unexpected error occurred"}

"""Integration tests for API endpoints using FastAPI TestClient."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from textsense.adapters.outbound.store import MemoryKeyValueStore
from textsense.config import get_settings
from textsense.main import create_app


@pytest.fixture
def settings():
    return get_settings(
        groq_api_key="",
        claude_api_key="",
        preferred_provider="",
        store_backend="memory",
        validate_credentials=False,
    )


@pytest.fixture
def client(settings):
    app = create_app(settings, store=MemoryKeyValueStore())
    with TestClient(app) as c:
        yield c


class TestHealthEndpoints:
    def test_health_check(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["available_providers"] == ["local"]
        assert "store" in data["services"]

    def test_metrics_endpoint(self, client):
        client.get("/api/v1/health")
        resp = client.get("/api/v1/metrics")
        assert resp.status_code == 200
        assert b"http_requests_total" in resp.content

    def test_request_id_is_echoed(self, client):
        resp = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"

    def test_unhandled_error_is_counted_as_500(self, settings):
        app = create_app(settings, store=MemoryKeyValueStore())

        @app.get("/boom-for-metrics")
        async def boom():
            raise RuntimeError("kaput")

        with TestClient(app, raise_server_exceptions=False) as c:
            resp = c.get("/boom-for-metrics")
            assert resp.status_code == 500
            assert resp.json()["code"] == "INTERNAL_ERROR"

            metrics = c.get("/api/v1/metrics").text
        assert 'endpoint="/boom-for-metrics"' in metrics
        assert 'status_code="500"' in metrics


class TestAIEndpoints:
    def test_explain_falls_back_to_local(self, client, sample_text):
        resp = client.post("/api/v1/ai/explain", json={"text": sample_text, "level": "detailed"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["provider"] == "local"
        assert data["level"] == "detailed"
        assert data["explanation"]
        assert data["analysis"]["sentence_count"] == 7

    def test_summarize_falls_back_to_local(self, client, sample_text):
        resp = client.post("/api/v1/ai/summarize", json={"text": sample_text, "length": "short"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["provider"] == "local"
        assert data["summary"] == "Photosynthesis converts sunlight into chemical energy."
        assert data["original_length"] == len(sample_text)

    def test_blank_text_is_422(self, client):
        resp = client.post("/api/v1/ai/explain", json={"text": "   "})
        assert resp.status_code == 422
        assert resp.json() == {"code": "INVALID_INPUT", "message": "No text provided"}

    def test_unknown_level_is_422(self, client):
        resp = client.post("/api/v1/ai/explain", json={"text": "hello", "level": "expert"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_INPUT"

    def test_clear_cache(self, client):
        resp = client.delete("/api/v1/ai/cache")
        assert resp.status_code == 204


class TestProviderEndpoints:
    def test_status(self, client):
        resp = client.get("/api/v1/providers/status")
        assert resp.status_code == 200
        data = resp.json()
        assert data["initialized"] is True
        assert data["total_providers"] == 3
        assert data["statistics"]["provider_status"]["groq"]["state"] == "unavailable"
        assert data["providers"]["claude"]["tier"] == "tier1"

    def test_statistics_count_requests(self, client):
        client.post("/api/v1/ai/explain", json={"text": "one two three"})
        resp = client.get("/api/v1/providers/statistics")
        data = resp.json()
        assert data["total_requests"] == 1
        assert data["provider_usage"]["local"] == 1

    def test_rate_limits(self, client):
        resp = client.get("/api/v1/providers/rate-limits")
        assert resp.status_code == 200
        data = resp.json()
        assert data["groq"]["identifier"] == "groq"
        assert data["groq"]["capacity"] == 100
        assert data["claude"]["identifier"] == "claude_tier1"

    def test_reinitialize(self, client):
        resp = client.post("/api/v1/providers/initialize")
        assert resp.status_code == 200
        assert resp.json()["available_providers"] == ["local"]


class TestWithCredentials:
    def test_seeded_groq_key_serves_explanations(self, settings, sample_text):
        settings = settings.model_copy(update={"groq_api_key": "gsk-test"})
        resp_mock = MagicMock()
        resp_mock.status_code = 200
        resp_mock.headers = {}
        resp_mock.json.return_value = {
            "choices": [{"message": {"content": "Plants turn light into food."}}],
            "usage": {"total_tokens": 30},
        }

        app = create_app(settings, store=MemoryKeyValueStore())
        with patch.object(
            httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=resp_mock
        ):
            with TestClient(app) as client:
                resp = client.post("/api/v1/ai/explain", json={"text": sample_text})

        assert resp.status_code == 200
        data = resp.json()
        assert data["provider"] == "groq"
        assert data["explanation"] == "Plants turn light into food."
        assert data["tokens_used"] == 30
        assert data["analysis"] is None

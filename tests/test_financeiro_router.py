"""Tests for the financeiro API endpoints."""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from conftest import NOW, make_closure, make_order, make_quote
from dashboard.api.main import app
from dashboard.api.routers import financeiro
from scripts.financeiro.ai_insights import AIInsightFetcher
from scripts.financeiro.config import FinanceConfig
from scripts.financeiro.data_loader import FinanceDataset
from scripts.lib.ai_provider import AIResponse
from scripts.lib.kv_store import InMemoryStore


def build_dataset():
    return FinanceDataset(
        closures=[
            make_closure("c1", "o1", created_at="2024-01-10T15:00:00Z", received=1000, profit=450),
            make_closure("c2", "o2", created_at="2024-01-12T15:00:00Z", received=2000, profit=900),
        ],
        orders=[
            make_order("o1", client_name="Maria Silva", service_type="Drywall"),
            make_order("o2", client_name="João, Souza", service_type="Gesso"),
        ],
        quotes=[make_quote(f"q{i}", "o1", status="approved" if i % 2 else "rejected") for i in range(6)],
    )


def partial_dataset():
    dataset = build_dataset()
    dataset.quotes = []
    dataset.load_error = "Failed to load: orcamentos"
    return dataset


@pytest.fixture
def complete():
    reply = json.dumps({"insights": [{"kind": "info", "title": "Follow up", "description": "Call back"}]})
    return AsyncMock(return_value=AIResponse(
        content=reply, provider="groq", model="test", input_tokens=1, output_tokens=1, latency_ms=1,
    ))


@pytest.fixture
def client(complete):
    store = InMemoryStore()
    config = FinanceConfig()
    app.dependency_overrides[financeiro.get_dataset] = build_dataset
    app.dependency_overrides[financeiro.get_now] = lambda: NOW
    app.dependency_overrides[financeiro.get_config] = lambda: config
    app.dependency_overrides[financeiro.get_fetcher] = lambda: AIInsightFetcher(
        store, config=config, complete=complete, clock=lambda: NOW.timestamp(),
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestReportEndpoint:
    def test_default_month(self, client):
        resp = client.get("/api/financeiro/report")
        assert resp.status_code == 200
        body = resp.json()
        assert body["period"] == "month"
        assert body["kpis"]["revenue"] == 3000
        assert body["deltas"]["revenue"]["label"] == "↑∞"
        assert len(body["trend"]) == 12
        assert body["date_error"] is False

    def test_portuguese_period_label(self, client):
        resp = client.get("/api/financeiro/report", params={"period": "ano"})
        assert resp.status_code == 200
        assert resp.json()["period"] == "year"

    def test_invalid_range_flagged(self, client):
        resp = client.get("/api/financeiro/report", params={
            "period": "custom", "start": "2024-02-01", "end": "2024-01-01",
        })
        assert resp.status_code == 200
        assert resp.json()["date_error"] is True
        assert resp.json()["kpis"]["revenue"] == 0

    def test_unknown_period_rejected(self, client):
        assert client.get("/api/financeiro/report", params={"period": "decade"}).status_code == 422

    def test_bad_month_rejected(self, client):
        assert client.get("/api/financeiro/report", params={"month": "2024-13"}).status_code == 422

    def test_month_drill_down(self, client):
        resp = client.get("/api/financeiro/report", params={"period": "year", "month": "2023-12"})
        assert resp.json()["kpis"]["project_count"] == 0


class TestConversionEndpoint:
    def test_funnel(self, client):
        body = client.get("/api/financeiro/conversion").json()
        assert body["total_quotes"] == 6
        assert body["overall_conversion_rate"] == pytest.approx(50.0)
        assert body["load_error"] is None


class TestAIInsightsEndpoint:
    def test_returns_insights(self, client, complete):
        body = client.get("/api/financeiro/ai-insights").json()
        assert body["count"] == 1
        assert body["insights"][0]["title"] == "Follow up"
        complete.assert_awaited_once()

    def test_second_request_served_from_cache(self, client, complete):
        client.get("/api/financeiro/ai-insights")
        body = client.get("/api/financeiro/ai-insights").json()
        assert body["count"] == 1
        complete.assert_awaited_once()

    def test_failure_is_empty_not_error(self, client, complete):
        complete.side_effect = RuntimeError("provider down")
        resp = client.get("/api/financeiro/ai-insights")
        assert resp.status_code == 200
        assert resp.json() == {"insights": [], "count": 0, "load_error": None}

    def test_load_error_reported(self, client):
        app.dependency_overrides[financeiro.get_dataset] = partial_dataset
        body = client.get("/api/financeiro/ai-insights").json()
        assert body["load_error"] == "Failed to load: orcamentos"
        assert body["count"] == 0


class TestExportEndpoint:
    def test_csv_download(self, client):
        resp = client.get("/api/financeiro/export.csv")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert 'filename="financeiro-2024-01-15.csv"' in resp.headers["content-disposition"]
        lines = resp.text.splitlines()
        assert lines[0].startswith("Client,Service,Date")
        assert len(lines) == 3
        assert '"João, Souza"' in resp.text
        assert "x-load-error" not in resp.headers

    def test_load_error_header(self, client):
        app.dependency_overrides[financeiro.get_dataset] = partial_dataset
        resp = client.get("/api/financeiro/export.csv")
        assert resp.status_code == 200
        assert resp.headers["x-load-error"] == "Failed to load: orcamentos"
        assert len(resp.text.splitlines()) == 3


class TestHealth:
    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert "supabase" in body["integrations"]

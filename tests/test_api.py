"""Tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from component_extractor import extractor
from component_extractor.errors import (
    ExtractionError,
    ExtractionTimeoutError,
    InvalidURLError,
    NavigationError,
)
from component_extractor import main
from component_extractor.main import app
from component_extractor.metrics import build_metrics, get_metrics_history
from component_extractor.models import ExtractionResult


@pytest.fixture
def client():
    get_metrics_history().clear()
    yield TestClient(app)
    get_metrics_history().clear()


def _raising(exc):
    async def fake_extract(url, options=None):
        raise exc
    return fake_extract


class TestApi:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_extract_success(self, client, monkeypatch):
        seen = {}

        async def fake_extract(url, options=None):
            seen["url"] = url
            seen["options"] = options
            return ExtractionResult(components=[], metrics=build_metrics([], url))

        monkeypatch.setattr(extractor, "extract", fake_extract)
        response = client.post("/extract", json={"url": " https://example.com/ ", "options": {"max_components": 5}})

        assert response.status_code == 200
        body = response.json()
        assert body["components"] == []
        assert body["metrics"]["url"] == "https://example.com/"
        assert seen["url"] == "https://example.com/"
        assert seen["options"].max_components == 5

    def test_camel_case_options(self, client, monkeypatch):
        seen = {}

        async def fake_extract(url, options=None):
            seen["options"] = options
            return ExtractionResult(components=[], metrics=build_metrics([], url))

        monkeypatch.setattr(extractor, "extract", fake_extract)
        response = client.post("/extract", json={
            "url": "https://example.com/",
            "options": {"maxComponents": 5, "skipScreenshots": False, "extractMainContent": False},
        })

        assert response.status_code == 200
        assert seen["options"].max_components == 5
        assert seen["options"].skip_screenshots is False
        assert seen["options"].extract_main_content is False

    def test_unknown_option_rejected(self, client):
        response = client.post("/extract", json={"url": "https://example.com/", "options": {"bogus": 1}})
        assert response.status_code == 422

    @pytest.mark.parametrize("exc, status", [
        (InvalidURLError("Invalid URL format. Must start with http or https."), 400),
        (NavigationError("Failed to load"), 502),
        (ExtractionTimeoutError("Extraction timed out after 100ms"), 504),
        (ExtractionError("Failed to extract UI components: boom"), 500),
    ])
    def test_error_mapping(self, client, monkeypatch, exc, status):
        monkeypatch.setattr(extractor, "extract", _raising(exc))
        response = client.post("/extract", json={"url": "https://example.com/"})
        assert response.status_code == status
        assert response.json()["detail"] == str(exc)

    def test_bare_host_rejected(self, client):
        response = client.post("/extract", json={"url": "example.com"})
        assert response.status_code == 400

    def test_metrics_history(self, client):
        get_metrics_history().add(build_metrics([], "https://a.example/"))
        get_metrics_history().add(build_metrics([], "https://b.example/"))

        response = client.get("/metrics/history")
        assert [m["url"] for m in response.json()] == ["https://b.example/", "https://a.example/"]

        assert client.delete("/metrics/history").status_code == 200
        assert client.get("/metrics/history").json() == []

    def test_run_server_uses_settings(self, monkeypatch):
        import uvicorn

        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

        main.run_server(port=9100)

        assert len(calls) == 1
        served, kwargs = calls[0]
        assert served is app
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 9100

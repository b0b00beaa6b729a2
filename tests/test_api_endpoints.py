"""API endpoint tests using FastAPI's TestClient."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeLLM, make_fetcher
from manufacturer_intel.api.dependencies import (
    get_discovery_pipeline,
    get_manufacturer_store,
    get_scrape_pipeline,
)
from manufacturer_intel.api.main import app
from manufacturer_intel.crawler.service import CrawlerService
from manufacturer_intel.pipeline.manager import ScrapePipeline
from manufacturer_intel.services.discovery import WebsiteDiscoveryPipeline, WebsiteDiscoveryService
from manufacturer_intel.services.extraction import CompanyExtractor
from manufacturer_intel.services.lifecycle import JobLifecycle
from manufacturer_intel.services.matching import CatalogMatcher


PROFILE_REPLY = json.dumps({"headquarters": "Dallas, TX", "brandNames": ["Acme"]})


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def client(store, manufacturer, home_html, llm):
    """TestClient whose dependencies use the temp store and fake network/LLM."""
    fetcher = make_fetcher({"https://acme.example/": (200, home_html)})

    def scrape_pipeline():
        return ScrapePipeline(
            store=store,
            crawler=CrawlerService(fetcher=fetcher, request_delay=0),
            extractor=CompanyExtractor(llm),
            matcher=CatalogMatcher(llm),
            lifecycle=JobLifecycle(store),
        )

    def discovery_pipeline():
        service = WebsiteDiscoveryService(llm=llm, fetcher=fetcher, request_delay=0)
        return WebsiteDiscoveryPipeline(store=store, service=service, batch_delay=0)

    app.dependency_overrides[get_manufacturer_store] = lambda: store
    app.dependency_overrides[get_scrape_pipeline] = scrape_pipeline
    app.dependency_overrides[get_discovery_pipeline] = discovery_pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoints:
    """Tests for health and root endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "X-Process-Time" in response.headers

    def test_readiness_check(self, client):
        response = client.get("/api/v1/health/ready")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["database"] == "ok"
        assert data["running_jobs"] == 0

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"


class TestScrapeEndpoints:
    """Tests for triggering scrapes."""

    def test_scrape_returns_job_and_runs_in_background(self, client, llm, manufacturer):
        llm.replies = [PROFILE_REPLY, "{}"]

        response = client.post(
            f"/api/v1/manufacturers/{manufacturer.id}/scrape",
            json={"website_url": "https://acme.example", "max_pages": 2},
        )

        assert response.status_code == 202
        data = response.json()
        assert data["status"] == "running"

        # TestClient runs background tasks before returning
        job = client.get(f"/api/v1/jobs/{data['job_id']}").json()
        assert job["status"] == "completed"
        assert job["pages_scraped"] == 1
        assert job["result_summary"]["pdfs_found"] == 2

    def test_scrape_wait_returns_outcome(self, client, llm, manufacturer):
        llm.replies = [PROFILE_REPLY, "{}"]

        response = client.post(
            f"/api/v1/manufacturers/{manufacturer.id}/scrape",
            json={"website_url": "https://acme.example", "max_pages": 2, "wait": True},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["data"]["pages_scraped"] == 1
        assert data["data"]["profile"]["headquarters"] == "Dallas, TX"
        assert len(data["data"]["documents"]) == 2

    def test_scrape_conflict(self, client, store, manufacturer):
        running = JobLifecycle(store).start(manufacturer.id, "https://acme.example")

        response = client.post(
            f"/api/v1/manufacturers/{manufacturer.id}/scrape",
            json={"website_url": "https://acme.example"},
        )

        assert response.status_code == 409
        data = response.json()
        assert data["type"] == "JobConflictError"
        assert data["details"]["job_id"] == running.id

    @pytest.mark.parametrize("payload", [
        {"website_url": "ftp://acme.example"},
        {"website_url": "   "},
        {"website_url": "https://acme.example", "max_pages": 50},
    ])
    def test_scrape_invalid_request(self, client, store, manufacturer, payload):
        response = client.post(f"/api/v1/manufacturers/{manufacturer.id}/scrape", json=payload)

        assert response.status_code == 400
        assert store.get_jobs_for_manufacturer(manufacturer.id) == []

    def test_scrape_missing_url_field(self, client, manufacturer):
        response = client.post(f"/api/v1/manufacturers/{manufacturer.id}/scrape", json={})
        assert response.status_code == 422

    def test_scrape_unknown_manufacturer(self, client):
        response = client.post(
            "/api/v1/manufacturers/missing/scrape", json={"website_url": "https://acme.example"}
        )

        assert response.status_code == 404
        assert response.json()["type"] == "NotFoundError"


class TestJobEndpoints:
    """Tests for job and knowledge inspection."""

    def test_get_unknown_job(self, client):
        response = client.get("/api/v1/jobs/missing")
        assert response.status_code == 404

    def test_list_jobs_and_knowledge(self, client, store, llm, manufacturer):
        llm.replies = [PROFILE_REPLY, "{}"]
        client.post(
            f"/api/v1/manufacturers/{manufacturer.id}/scrape",
            json={"website_url": "https://acme.example", "max_pages": 2},
        )

        jobs = client.get(f"/api/v1/manufacturers/{manufacturer.id}/jobs").json()
        assert len(jobs["jobs"]) == 1

        knowledge = client.get(f"/api/v1/manufacturers/{manufacturer.id}/knowledge").json()
        assert knowledge["knowledge"]["scraping_status"] == "completed"
        assert knowledge["knowledge"]["profile"]["headquarters"] == "Dallas, TX"
        assert len(knowledge["catalog_products"]) == 2

    def test_knowledge_before_any_scrape(self, client, manufacturer):
        response = client.get(f"/api/v1/manufacturers/{manufacturer.id}/knowledge")

        assert response.status_code == 200
        assert response.json()["knowledge"] is None

    def test_knowledge_unknown_manufacturer(self, client):
        assert client.get("/api/v1/manufacturers/missing/knowledge").status_code == 404


class TestDiscoveryEndpoints:
    """Tests for website discovery."""

    def test_discover_by_manufacturer(self, client, store, llm, manufacturer):
        llm.replies = [
            json.dumps([{"url": "https://acme.example", "title": "Acme Grooming"}]),
            json.dumps({
                "website": "https://acme.example",
                "confidence": "high",
                "reasoning": "Official site",
                "needsReview": False,
            }),
        ]

        response = client.post("/api/v1/discovery/website", json={"manufacturer_id": manufacturer.id})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["updated"] is True
        assert data["result"]["confidence"] == "high"
        assert store.get_manufacturer(manufacturer.id).website == "https://acme.example"

    def test_discover_requires_input(self, client):
        response = client.post("/api/v1/discovery/website", json={})
        assert response.status_code == 400

    def test_batch_dry_run(self, client, llm, manufacturer):
        response = client.get("/api/v1/discovery/batch", params={"dry_run": True, "limit": 5})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["dry_run"] is True
        assert [c["id"] for c in data["candidates"]] == [manufacturer.id]
        assert llm.calls == []

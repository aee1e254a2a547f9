"""
Integration tests for the ingestion API endpoints.
The store and programs are swapped in through dependency overrides.
"""
from unittest.mock import AsyncMock

import httpx
import pytest

from src.core.models import BatchStatus
from src.ingestion.ops.batch_executor import RateLimitedExecutor
from src.ingestion.programs.discovery import DiscoveryOrchestrator
from src.ingestion.programs.processing import ArticleProcessor, BatchLifecycleManager
from src.ingestion.validation.validator import ContentValidator
from src.web.app import app
from src.web.dependencies import get_manager, get_orchestrator, get_store

URL = "https://news.example.com/2024/05/water-plant"


@pytest.fixture
async def api_client(store, fake_source, fake_extraction, fake_classifier, make_payload):
    orchestrator = DiscoveryOrchestrator(store, [fake_source("search", [URL])], organization_delay=0)
    processor = ArticleProcessor(store, fake_extraction({URL: make_payload()}), ContentValidator(fake_classifier()))
    manager = BatchLifecycleManager(store, processor, RateLimitedExecutor(concurrency=2, batch_delay=0),
                                    batch_delay=0, sleep=AsyncMock())

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_manager] = lambda: manager

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


class TestIngestionApi:

    @pytest.mark.asyncio
    async def test_batch_not_found(self, api_client):
        response = await api_client.get("/api/ingestion/batches/999")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_discovery_then_ready_then_process(self, api_client, make_organization, store):
        org = await make_organization()

        response = await api_client.post("/api/ingestion/discovery", json={"organization_ids": [org.id]})
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["data"]["summary"]["total_new_urls"] == 1
        batch_id = body["data"]["results"][0]["batch_id"]

        ready = (await api_client.get("/api/ingestion/batches/ready")).json()["data"]
        assert ready["total"] == 1
        assert ready["batches"][0]["organization_name"] == org.name
        assert ready["batches"][0]["discovered_urls"] == [URL]

        response = await api_client.post("/api/ingestion/batches/process", json={})
        assert response.status_code == 200
        summary = response.json()["data"]["summary"]
        assert summary["batches_processed"] == 1
        assert summary["total_successful"] == 1

        detail = (await api_client.get(f"/api/ingestion/batches/{batch_id}")).json()["data"]
        assert detail["status"] == BatchStatus.COMPLETED.value
        assert detail["successful_urls"] == 1

    @pytest.mark.asyncio
    async def test_process_with_nothing_ready(self, api_client):
        response = await api_client.post("/api/ingestion/batches/process", json={"batch_ids": None})
        assert response.status_code == 200
        assert response.json()["message"] == "No batches ready for processing"

    @pytest.mark.asyncio
    async def test_stats(self, api_client, make_organization):
        org = await make_organization()
        await api_client.post("/api/ingestion/discovery", json={"organization_ids": [org.id]})

        data = (await api_client.get("/api/ingestion/batches/stats")).json()["data"]
        assert data["stats"]["total_batches"] == 1
        assert data["stats"]["total_urls_discovered"] == 1
        assert data["stats"]["active_batches"] == 1
        assert len(data["batches"]) == 1

    @pytest.mark.asyncio
    async def test_discovery_rejects_bad_timeframe(self, api_client):
        response = await api_client.post("/api/ingestion/discovery", json={"timeframe_days": 0})
        assert response.status_code == 422

"""
Integration tests for the discovery orchestrator against a real async store.
"""
from unittest.mock import AsyncMock, patch

import pytest

from src.core.exceptions import QuotaExhausted, SourceUnavailable
from src.core.models import ArticleStatus, BatchStatus
from src.ingestion.programs.discovery import DiscoveryOrchestrator

U1 = "https://news.example.com/u1"
U2 = "https://news.example.com/u2"
U3 = "https://news.example.com/u3"


class TestDiscoverForOrganization:

    @pytest.mark.asyncio
    async def test_union_dedupes_across_sources(self, store, make_organization, fake_source):
        org = await make_organization()
        orchestrator = DiscoveryOrchestrator(store, [
            fake_source("A", [U1, U2]),
            fake_source("B", [U2, U3]),
        ], organization_delay=0)

        result = await orchestrator.discover_for_organization(org, timeframe_days=30)

        batch = await store.get_discovery_batch(result.batch_id)
        assert batch.discovered_urls == [U1, U2, U3]
        assert batch.total_urls == 3
        assert batch.status == BatchStatus.READY_FOR_PROCESSING.value
        assert batch.timeframe_days == 30
        assert batch.discovered_at is not None
        assert batch.adapter_counts == {"A": 2, "B": 2}
        assert result.total_found == 3

    @pytest.mark.asyncio
    async def test_existing_articles_are_subtracted(self, store, make_organization, fake_source):
        org = await make_organization()
        await store.create_article(org.id, U2, title="Already here", status=ArticleStatus.DRAFT)
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1, U2, U3])], organization_delay=0)

        result = await orchestrator.discover_for_organization(org)

        batch = await store.get_discovery_batch(result.batch_id)
        assert batch.discovered_urls == [U1, U3]
        assert result.new_urls == 2
        assert result.duplicate_urls == 1

    @pytest.mark.asyncio
    async def test_dedup_is_per_organization(self, store, make_organization, fake_source):
        org_a = await make_organization()
        org_b = await make_organization()
        await store.create_article(org_a.id, U1, title="Belongs to A")
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1, U2])], organization_delay=0)

        result = await orchestrator.discover_for_organization(org_b)

        assert (await store.get_discovery_batch(result.batch_id)).discovered_urls == [U1, U2]

    @pytest.mark.asyncio
    async def test_repeated_runs_never_rediscover_ingested_urls(self, store, make_organization, fake_source):
        org = await make_organization()
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1, U2, U3])], organization_delay=0)

        first = await orchestrator.discover_for_organization(org)
        for url in (await store.get_discovery_batch(first.batch_id)).discovered_urls[:2]:
            await store.create_article(org.id, url, title="ingested")

        second = await orchestrator.discover_for_organization(org)
        assert (await store.get_discovery_batch(second.batch_id)).discovered_urls == [U3]

    @pytest.mark.asyncio
    async def test_failing_source_does_not_block_siblings(self, store, make_organization, fake_source):
        org = await make_organization()
        orchestrator = DiscoveryOrchestrator(store, [
            fake_source("search", error=SourceUnavailable("HTTP 500 from search", source="search")),
            fake_source("site_map", error=QuotaExhausted("HTTP 402: Insufficient credits", status_code=402)),
            fake_source("news_feed", [U1]),
        ], organization_delay=0)

        result = await orchestrator.discover_for_organization(org)

        batch = await store.get_discovery_batch(result.batch_id)
        assert batch.status == BatchStatus.READY_FOR_PROCESSING.value
        assert batch.discovered_urls == [U1]
        assert batch.adapter_errors["search"] == "HTTP 500 from search"
        assert batch.adapter_errors["site_map"].startswith("[soft]")
        assert batch.adapter_counts == {"search": 0, "site_map": 0, "news_feed": 1}

    @pytest.mark.asyncio
    async def test_inapplicable_sources_are_skipped(self, store, make_organization, fake_source):
        org = await make_organization(news_url=None)
        skipped = fake_source("news_feed", [U1], applies=False)
        orchestrator = DiscoveryOrchestrator(store, [skipped, fake_source("search", [U2])], organization_delay=0)

        result = await orchestrator.discover_for_organization(org)

        assert skipped.calls == 0
        assert result.adapter_counts == {"search": 1}

    @pytest.mark.asyncio
    async def test_invalid_urls_from_sources_dropped(self, store, make_organization, fake_source):
        org = await make_organization()
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1, "  ", "/relative", f" {U2} "])],
                                             organization_delay=0)
        result = await orchestrator.discover_for_organization(org)
        assert (await store.get_discovery_batch(result.batch_id)).discovered_urls == [U1, U2]

    @pytest.mark.asyncio
    async def test_error_after_batch_creation_marks_batch_failed(self, store, make_organization, fake_source):
        org = await make_organization()
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1])], organization_delay=0)

        with patch.object(store, "find_existing_urls", AsyncMock(side_effect=RuntimeError("store hiccup"))):
            result = await orchestrator.discover_for_organization(org)

        assert result.status == BatchStatus.FAILED.value
        batch = await store.get_discovery_batch(result.batch_id)
        assert batch.status == BatchStatus.FAILED.value
        assert batch.error_message == "store hiccup"
        assert batch.completed_at is not None

    @pytest.mark.asyncio
    async def test_batch_creation_failure_propagates(self, store, make_organization, fake_source):
        org = await make_organization()
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1])], organization_delay=0)

        with patch.object(store, "create_discovery_batch", AsyncMock(side_effect=ConnectionError("db down"))):
            with pytest.raises(ConnectionError):
                await orchestrator.discover_for_organization(org)


class TestDiscoverBulk:

    @pytest.mark.asyncio
    async def test_organizations_run_sequentially_with_courtesy_delay(self, store, make_organization, fake_source):
        orgs = [await make_organization() for _ in range(3)]
        sleep = AsyncMock()
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1, U2])], organization_delay=0.5, sleep=sleep)

        result = await orchestrator.discover_bulk(timeframe_days=60)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)
        assert [r["organization_id"] for r in result["results"]] == [org.id for org in orgs]
        assert result["summary"] == {
            "organizations_processed": 3,
            "successful": 3,
            "failed": 0,
            "total_urls_found": 6,
            "total_new_urls": 6,
            "total_duplicates": 0,
        }

    @pytest.mark.asyncio
    async def test_selected_organizations_only(self, store, make_organization, fake_source):
        await make_organization()
        chosen = await make_organization()
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1])], organization_delay=0)

        result = await orchestrator.discover_bulk([chosen.id])

        assert [r["organization_id"] for r in result["results"]] == [chosen.id]

    @pytest.mark.asyncio
    async def test_fatal_error_for_one_organization_is_recorded(self, store, make_organization, fake_source):
        await make_organization()
        await make_organization()
        orchestrator = DiscoveryOrchestrator(store, [fake_source("A", [U1])], organization_delay=0)

        real_create = store.create_discovery_batch
        calls = {"n": 0}

        async def flaky_create(organization_id, timeframe_days):
            calls["n"] += 1
            if calls["n"] == 1:
                raise ConnectionError("db down")
            return await real_create(organization_id, timeframe_days)

        with patch.object(store, "create_discovery_batch", side_effect=flaky_create):
            result = await orchestrator.discover_bulk()

        assert result["summary"]["failed"] == 1
        assert result["summary"]["successful"] == 1
        failed = result["results"][0]
        assert failed["batch_id"] is None
        assert failed["error"] == "db down"

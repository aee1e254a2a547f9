"""
Tests for the extraction job client: immediate vs queued submissions,
polling, timeouts and URL mapping.
"""
import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from src.core.data_types import ExtractionJob, ImmediateResults, QueuedJob
from src.core.exceptions import ExtractionFailed, ExtractionTimeout
from src.core.models import JobStatus
from src.ingestion.extraction.client import (
    ExtractionJobClient,
    FirecrawlExtractService,
    map_results_to_urls,
)

URLS = ["https://news.example.com/a", "https://news.example.com/b"]


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.now += seconds


class ScriptedService:
    """Answers submit() once and poll() from a per-job script of statuses."""

    def __init__(self, submission, scripts=None):
        self.submission = submission
        self.scripts = scripts or {}
        self.polls = {}

    async def submit(self, urls, hint=None):
        if callable(self.submission):
            return self.submission(urls)
        return self.submission

    async def poll(self, job_id, urls):
        self.polls[job_id] = self.polls.get(job_id, 0) + 1
        status, payload = self.scripts[job_id].pop(0)
        await asyncio.sleep(0)
        job = ExtractionJob(job_id=job_id, urls=list(urls), status=status)
        if status == JobStatus.COMPLETED:
            job.raw_result = payload
        elif status == JobStatus.FAILED:
            job.error = payload
        return job


class TestMapping:

    def test_positional_mapping_is_bounded(self):
        results = [{"title": "A"}, {"title": "B"}, {"title": "C"}]
        mapped = map_results_to_urls(URLS, results)
        assert list(mapped) == URLS
        assert mapped[URLS[1]].title == "B"

    def test_url_field_wins_over_position(self):
        results = [{"title": "B", "url": URLS[1]}, {"title": "A", "url": URLS[0]}]
        mapped = map_results_to_urls(URLS, results)
        assert mapped[URLS[0]].title == "A"
        assert mapped[URLS[1]].title == "B"

    def test_non_dict_records_skipped(self):
        mapped = map_results_to_urls(URLS, [None, {"title": "B"}])
        assert list(mapped) == [URLS[1]]

    def test_payload_fallback_fields(self):
        mapped = map_results_to_urls(URLS[:1], [{"title": "A", "body_markdown": "Body", "publishedAt": "2024-03-01"}])
        article = mapped[URLS[0]]
        assert article.content == "Body"
        assert article.publish_date == "2024-03-01"

    def test_untyped_payload_fields_are_coerced(self):
        mapped = map_results_to_urls(URLS[:1], [{"title": "A", "publish_date": 2024, "keywords": "water, Nairobi"}])
        article = mapped[URLS[0]]
        assert article.publish_date == "2024"
        assert article.keywords == ["water", "Nairobi"]

    def test_unusable_keywords_and_date_dropped(self):
        mapped = map_results_to_urls(URLS[:1], [{"title": "A", "publish_date": {"year": 2024}, "keywords": {"a": 1}}])
        article = mapped[URLS[0]]
        assert article.publish_date is None
        assert article.keywords == []


class TestJobClient:

    @pytest.mark.asyncio
    async def test_immediate_results(self):
        service = ScriptedService(ImmediateResults(articles=map_results_to_urls(URLS, [{"title": "A"}])))
        client = ExtractionJobClient(service, poll_interval=1, max_wait=10)
        result = await client.extract(URLS, hint="Hope Foundation")
        assert list(result) == [URLS[0]]

    @pytest.mark.asyncio
    async def test_queued_job_polled_until_complete(self):
        clock = FakeClock()
        service = ScriptedService(QueuedJob("job-1"), {
            "job-1": [
                (JobStatus.PROCESSING, None),
                (JobStatus.PROCESSING, None),
                (JobStatus.COMPLETED, [{"title": "A"}, {"title": "B"}]),
            ]
        })
        client = ExtractionJobClient(service, poll_interval=2, max_wait=60, sleep=clock.sleep, clock=clock)
        result = await client.extract(URLS)

        assert service.polls["job-1"] == 3
        assert clock.now == 4
        assert [a.title for a in result.values()] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_failed_job_raises_with_upstream_text(self):
        service = ScriptedService(QueuedJob("job-1"), {"job-1": [(JobStatus.FAILED, "robots.txt disallows")]})
        client = ExtractionJobClient(service, poll_interval=1, max_wait=10, sleep=AsyncMock())
        with pytest.raises(ExtractionFailed) as exc:
            await client.extract(URLS)
        assert "robots.txt disallows" in str(exc.value)
        assert exc.value.job_id == "job-1"

    @pytest.mark.asyncio
    async def test_exceeding_max_wait_is_a_timeout(self):
        clock = FakeClock()
        service = ScriptedService(QueuedJob("job-1"), {"job-1": [(JobStatus.PROCESSING, None)] * 100})
        client = ExtractionJobClient(service, poll_interval=2, max_wait=10, sleep=clock.sleep, clock=clock)

        with pytest.raises(ExtractionTimeout):
            await client.extract(URLS)
        assert clock.now <= 10
        assert service.polls["job-1"] <= 6

    @pytest.mark.asyncio
    async def test_concurrent_jobs_poll_independently(self):
        jobs = iter(["job-a", "job-b"])
        service = ScriptedService(lambda urls: QueuedJob(next(jobs)), {
            "job-a": [(JobStatus.COMPLETED, [{"title": "A"}])],
            "job-b": [(JobStatus.PROCESSING, None)] * 3 + [(JobStatus.COMPLETED, [{"title": "B"}])],
        })
        client = ExtractionJobClient(service, poll_interval=0, max_wait=5)

        first, second = await asyncio.gather(client.extract(URLS[:1]), client.extract(URLS[1:]))

        assert first[URLS[0]].title == "A"
        assert second[URLS[1]].title == "B"
        assert service.polls == {"job-a": 1, "job-b": 4}


class TestFirecrawlExtractService:

    @pytest.mark.asyncio
    async def test_submit_immediate(self):
        service = FirecrawlExtractService(api_key="fc-key")
        response = {"success": True, "data": [{"title": "A"}, {"title": "B"}, {"title": "extra"}]}
        with patch.object(service, "_request", AsyncMock(return_value=response)) as request:
            submission = await service.submit(URLS, hint="Hope Foundation")

        assert isinstance(submission, ImmediateResults)
        assert list(submission.articles) == URLS
        body = request.await_args.args[2]
        assert body["urls"] == URLS
        assert "Hope Foundation" in body["prompt"]

    @pytest.mark.asyncio
    async def test_submit_single_object_data(self):
        service = FirecrawlExtractService(api_key="fc-key")
        with patch.object(service, "_request", AsyncMock(return_value={"success": True, "data": {"title": "A"}})):
            submission = await service.submit(URLS[:1])
        assert submission.articles[URLS[0]].title == "A"

    @pytest.mark.asyncio
    async def test_submit_queued(self):
        service = FirecrawlExtractService(api_key="fc-key")
        with patch.object(service, "_request", AsyncMock(return_value={"success": True, "id": "job-9"})):
            submission = await service.submit(URLS)
        assert submission == QueuedJob("job-9")

    @pytest.mark.asyncio
    async def test_submit_unexpected_shape(self):
        service = FirecrawlExtractService(api_key="fc-key")
        with patch.object(service, "_request", AsyncMock(return_value={"success": True})):
            with pytest.raises(ExtractionFailed):
                await service.submit(URLS)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload,expected", [
        ({"status": "completed", "data": [{"title": "A"}]}, JobStatus.COMPLETED),
        ({"status": "processing"}, JobStatus.PROCESSING),
        ({"status": "failed", "error": "blocked"}, JobStatus.FAILED),
    ])
    async def test_poll_status_mapping(self, payload, expected):
        service = FirecrawlExtractService(api_key="fc-key")
        with patch.object(service, "_request", AsyncMock(return_value=payload)):
            job = await service.poll("job-9", URLS)
        assert job.status == expected

    @pytest.mark.asyncio
    async def test_poll_unknown_status(self):
        service = FirecrawlExtractService(api_key="fc-key")
        with patch.object(service, "_request", AsyncMock(return_value={"status": "mystery"})):
            with pytest.raises(ExtractionFailed):
                await service.poll("job-9", URLS)

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_network(self):
        with patch("src.ingestion.extraction.client.settings") as mock_settings:
            mock_settings.firecrawl_api_key = None
            mock_settings.firecrawl_api_base = "https://firecrawl.test/v1"
            mock_settings.http_timeout = 30
            service = FirecrawlExtractService()
        with pytest.raises(ExtractionFailed):
            await service.submit(URLS)

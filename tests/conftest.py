"""
Shared pytest fixtures for the ingestion test suite.
"""
from typing import Dict, List, Optional, Sequence

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.data_types import ArticleCandidate, Classification, ExtractedArticle
from src.core.database import init_db
from src.core.models import ContentType, Relevance, Sentiment
from src.ingestion.database import OrganizationModel
from src.ingestion.sources.base import DiscoverySource
from src.ingestion.store import IngestionStore

GOOD_CONTENT = (
    "Hope Foundation opened a new water treatment plant in Nairobi on 12/03, serving more than "
    "40,000 residents. The $250,000 project was funded jointly with Grace Partners and completed in 2024. "
    "Director Mary Wanjiru said the plant cut waterborne illness by 35% in the first quarter. "
    "The foundation plans two more plants in Kisumu and Mombasa next year, according to its annual report."
)


# --- Database Fixtures ---

@pytest.fixture
async def session_factory(tmp_path):
    """Async SQLite session factory backed by a temp file, so concurrent sessions see each other."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ingestion.db'}")
    await init_db(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return IngestionStore(session_factory)


@pytest.fixture
def make_organization(store):
    """Factory fixture for creating test organizations."""
    counter = {"n": 0}

    async def _create(name: Optional[str] = None, website: Optional[str] = "https://hope.example.org",
                      news_url: Optional[str] = None, tags: Optional[List[str]] = None) -> OrganizationModel:
        counter["n"] += 1
        return await store.create_organization(
            name=name or f"Hope Foundation {counter['n']}",
            website=website,
            news_url=news_url,
            tags=tags,
        )

    return _create


# --- Fakes ---

class FakeSource(DiscoverySource):
    def __init__(self, name: str, urls: Sequence[str] = (), error: Optional[Exception] = None,
                 applies: bool = True):
        self.name = name
        self.urls = list(urls)
        self.error = error
        self.applies = applies
        self.calls = 0

    def applies_to(self, organization):
        return self.applies

    async def discover(self, organization, timeframe_days):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.urls)


class FakeExtraction:
    """Stands in for ExtractionJobClient: url -> payload dict, or url -> exception."""

    def __init__(self, payloads: Optional[Dict[str, object]] = None):
        self.payloads = payloads or {}
        self.calls: List[List[str]] = []

    async def extract(self, urls, hint=None):
        self.calls.append(list(urls))
        results = {}
        for url in urls:
            payload = self.payloads.get(url)
            if isinstance(payload, Exception):
                raise payload
            if payload is not None:
                results[url] = ExtractedArticle.from_payload(url, payload)
        return results


class FakeClassifier:
    def __init__(self, classification: Optional[Classification] = None, error: Optional[Exception] = None):
        self.classification = classification or Classification(
            sentiment=Sentiment.POSITIVE,
            content_type=ContentType.NEWS,
            relevance=Relevance.HIGH,
            reasoning="Organization is the main subject of a recent news story",
            sentiment_score=3,
        )
        self.error = error
        self.calls: List[ArticleCandidate] = []

    async def classify(self, candidate):
        self.calls.append(candidate)
        if self.error is not None:
            raise self.error
        return self.classification


def article_payload(title: str = "Hope Foundation opens water plant in Nairobi", **overrides) -> dict:
    payload = {
        "title": title,
        "summary": "The foundation opened a plant serving 40,000 residents.",
        "content": GOOD_CONTENT,
        "author": "Jane Doe",
        "publish_date": "2024-05-02",
        "main_image": "https://hope.example.org/img/plant.jpg",
        "keywords": ["water", "Nairobi"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def fake_source():
    return FakeSource


@pytest.fixture
def fake_extraction():
    return FakeExtraction


@pytest.fixture
def fake_classifier():
    return FakeClassifier


@pytest.fixture
def good_content():
    return GOOD_CONTENT


@pytest.fixture
def make_payload():
    return article_payload

"""
Core lightweight data types for the ingestion pipeline.

These are transfer objects (Dataclasses), NOT database models.
For SQLAlchemy ORM models, see src/ingestion/database.py.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from src.core.models import (
    BatchStatus,
    ContentType,
    ItemStatus,
    JobStatus,
    Relevance,
    Sentiment,
)

T = TypeVar("T")
R = TypeVar("R")


# --- Executor ---

@dataclass
class ItemOutcome(Generic[T, R]):
    """Exactly one per submitted item: either a result or the error it raised."""
    item: T
    result: Optional[R] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# --- Discovery ---

@dataclass(frozen=True)
class CandidateUrl:
    """A discovered URL and the adapter that produced it."""
    url: str
    source: str


@dataclass
class SourceRun:
    """What one adapter returned for one organization."""
    source: str
    urls: List[str] = field(default_factory=list)
    error: Optional[str] = None
    soft_failure: bool = False


@dataclass
class OrganizationDiscoveryResult:
    organization_id: int
    organization_name: str
    batch_id: Optional[int]
    status: str  # "ready_for_processing" | "failed"
    total_found: int = 0
    new_urls: int = 0
    duplicate_urls: int = 0
    adapter_counts: Dict[str, int] = field(default_factory=dict)
    adapter_errors: Dict[str, str] = field(default_factory=dict)
    error: Optional[str] = None


# --- Extraction ---


def _optional_text(value: Any) -> Optional[str]:
    """Extractor fields are untyped JSON; keep scalars as text, drop the rest."""
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _keyword_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return []
    return [k.strip() for k in value if isinstance(k, str) and k.strip()]


@dataclass
class ExtractedArticle:
    url: str
    title: str = ""
    summary: str = ""
    content: str = ""
    author: Optional[str] = None
    publish_date: Optional[str] = None
    main_image: Optional[str] = None
    keywords: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, url: str, payload: Dict[str, Any]) -> "ExtractedArticle":
        return cls(
            url=url,
            title=payload.get("title") or "",
            summary=payload.get("summary") or "",
            content=payload.get("content") or payload.get("body_markdown") or "",
            author=payload.get("author") or None,
            publish_date=_optional_text(payload.get("publish_date") or payload.get("publishedAt")),
            main_image=payload.get("main_image") or payload.get("main_image_url") or None,
            keywords=_keyword_list(payload.get("keywords")),
        )


@dataclass
class ImmediateResults:
    """Extraction service answered synchronously."""
    articles: Dict[str, ExtractedArticle]


@dataclass
class QueuedJob:
    """Extraction service queued the work; poll job_id."""
    job_id: str


ExtractionSubmission = Union[ImmediateResults, QueuedJob]


@dataclass
class ExtractionJob:
    job_id: str
    urls: List[str]
    status: JobStatus = JobStatus.SUBMITTED
    raw_result: Optional[List[Dict[str, Any]]] = None
    error: Optional[str] = None


# --- Validation ---

@dataclass
class ArticleCandidate:
    url: str
    title: str
    summary: str
    content: str
    organization_name: str
    published_at: Optional[str] = None


@dataclass
class Classification:
    sentiment: Sentiment
    content_type: ContentType
    relevance: Relevance
    reasoning: str = ""
    issues: List[str] = field(default_factory=list)
    # -1 negative, 0 not mentioned, 1 passing mention, 2 main focus, 3 main focus with social impact
    sentiment_score: Optional[int] = None


@dataclass
class ValidationResult:
    is_valid: bool
    reasons: List[str]
    sentiment: Sentiment = Sentiment.NEUTRAL
    content_type: ContentType = ContentType.OTHER
    relevance: Relevance = Relevance.LOW
    sentiment_score: Optional[int] = None
    publish_date_valid: bool = False
    classified: bool = False


# --- Processing ---

@dataclass
class ProcessedItem:
    url: str
    status: ItemStatus
    message: str = ""
    article_id: Optional[int] = None
    rejected: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "status": self.status.value,
            "message": self.message,
            "article_id": self.article_id,
            "rejected": self.rejected,
        }


@dataclass
class BatchProcessingResult:
    batch_id: int
    organization_name: str
    status: BatchStatus
    processed: int = 0
    successful: int = 0
    duplicates: int = 0
    failed: int = 0
    rejected: int = 0
    items: List[ProcessedItem] = field(default_factory=list)
    message: str = ""
    finished_at: datetime = field(default_factory=datetime.now)

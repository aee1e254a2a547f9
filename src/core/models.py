"""
Core enums for the ingestion pipeline.

NOTE: These are NOT database models. For SQLAlchemy ORM models, see
src/ingestion/database.py.

Every enum subclasses str so values can be stored directly in String
columns and compared against plain strings coming back from the store.
"""
from enum import Enum

class BatchStatus(str, Enum):
    DISCOVERING = "discovering"
    READY_FOR_PROCESSING = "ready_for_processing"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class ArticleStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    REJECTED = "rejected"

class ItemStatus(str, Enum):
    """Outcome of processing a single URL."""
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    ERROR = "error"

class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"

class ContentType(str, Enum):
    NEWS = "news"
    PRESS_RELEASE = "press_release"
    BLOG_POST = "blog_post"
    LIST_VIEW = "list_view"
    OTHER = "other"

class Relevance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

class JobStatus(str, Enum):
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

"""
Error taxonomy for the ingestion pipeline.

Adapter-level and item-level errors are captured into result records by the
orchestrator and the executor; they are raised here so that the capture points
can tell them apart without inspecting message strings.
"""
from enum import Enum
from typing import Optional


class PipelineError(Exception):
    """Base class for every pipeline error."""

    pass


# --- Discovery sources ---

class SourceError(PipelineError):
    """Error raised by a discovery source adapter."""

    def __init__(self, message: str, source: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.source = source
        self.status_code = status_code


class SourceUnavailable(SourceError):
    """Source could not be reached or answered with an error."""

    pass


class SourceExhausted(SourceError):
    """Source has nothing more to give for this run."""

    pass


class QuotaExhausted(SourceExhausted):
    """Quota or paid credits ran out (HTTP 402 / 429 class)."""

    pass


# --- Extraction ---

class ExtractionError(PipelineError):
    """Error from the structured-extraction service."""

    def __init__(self, message: str, job_id: Optional[str] = None):
        super().__init__(message)
        self.job_id = job_id


class ExtractionFailed(ExtractionError):
    pass


class ExtractionTimeout(ExtractionError):
    pass


# --- Item level ---

class ClassificationError(PipelineError):
    """Classification service call failed or returned an unusable payload."""

    pass


class MalformedUrl(PipelineError):
    """URL is not an absolute http(s) URL. Never reaches network calls."""

    def __init__(self, url: str):
        super().__init__(f"Invalid URL format: {url!r}")
        self.url = url


class PersistenceConflict(PipelineError):
    """Article URL already stored for the organization at write time."""

    def __init__(self, organization_id: int, url: str):
        super().__init__(f"Article already exists for organization {organization_id}: {url}")
        self.organization_id = organization_id
        self.url = url


# --- Soft / hard classification at the adapter boundary ---

class FailureSeverity(str, Enum):
    SOFT = "soft"
    HARD = "hard"


_SOFT_MARKERS = (
    "insufficient credits",
    "payment required",
    "quota",
    "rate limit",
)


def classify_source_error(exc: BaseException) -> FailureSeverity:
    """
    Decide once whether an adapter failure degrades coverage (SOFT) or is a
    real fault worth surfacing on the batch (HARD).
    """
    if isinstance(exc, SourceExhausted):
        return FailureSeverity.SOFT
    status_code = getattr(exc, "status_code", None)
    if status_code in (402, 429):
        return FailureSeverity.SOFT
    message = str(exc).lower()
    if "402" in message or any(marker in message for marker in _SOFT_MARKERS):
        return FailureSeverity.SOFT
    return FailureSeverity.HARD

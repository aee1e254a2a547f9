"""
Content validator: error detection -> date window -> classification -> decision.
"""
import logging
from datetime import date
from typing import List, Optional, Protocol

from src.core.config import settings
from src.core.data_types import ArticleCandidate, Classification, ValidationResult
from src.core.models import ContentType, Relevance, Sentiment
from src.ingestion.validation.heuristics import check_publish_date, detect_error_page

logger = logging.getLogger(__name__)

SAFETY_REJECTION_REASON = "Validation analysis failed - defaulting to rejection for safety"

ACCEPTED_CONTENT_TYPES = (ContentType.NEWS, ContentType.PRESS_RELEASE)


class ContentClassifier(Protocol):
    async def classify(self, candidate: ArticleCandidate) -> Classification: ...


def format_cutoff(cutoff: date) -> str:
    return f"{cutoff:%B} {cutoff.day}, {cutoff.year}"


def combine(classification: Classification, publish_date_valid: bool, cutoff: date) -> ValidationResult:
    """Collect every failing condition; the reasons list is complete, not first-hit."""
    reasons: List[str] = []

    if classification.sentiment == Sentiment.NEGATIVE:
        reasons.append("Article casts negative light on the organization")
    if not publish_date_valid:
        reasons.append(f"Article published before {format_cutoff(cutoff)}")
    if classification.content_type == ContentType.LIST_VIEW:
        reasons.append("Article is a list view or navigation page")
    if classification.relevance == Relevance.LOW:
        reasons.append("Article has insufficient content about the organization")
    if classification.content_type not in ACCEPTED_CONTENT_TYPES and classification.relevance != Relevance.HIGH:
        reasons.append("Article is not news content and lacks sufficient organizational focus")

    is_valid = not reasons
    reasons.extend(classification.issues)
    if is_valid and classification.reasoning:
        reasons.append(classification.reasoning)

    return ValidationResult(
        is_valid=is_valid,
        reasons=reasons,
        sentiment=classification.sentiment,
        content_type=classification.content_type,
        relevance=classification.relevance,
        sentiment_score=classification.sentiment_score,
        publish_date_valid=publish_date_valid,
        classified=True,
    )


class ContentValidator:
    def __init__(self, classifier: ContentClassifier, cutoff: Optional[date] = None):
        self.classifier = classifier
        self.cutoff = cutoff or settings.publish_date_cutoff

    async def validate(self, candidate: ArticleCandidate) -> ValidationResult:
        heuristic = detect_error_page(candidate)
        if not heuristic.is_valid:
            logger.info(f"Heuristic rejection for {candidate.url}: {heuristic.reasons[0]}")
            return ValidationResult(is_valid=False, reasons=heuristic.reasons)

        publish_date_valid = check_publish_date(candidate.published_at, self.cutoff)

        try:
            classification = await self.classifier.classify(candidate)
        except Exception as e:
            logger.error(f"Content classification failed for {candidate.url}: {e}")
            return ValidationResult(is_valid=False, reasons=[SAFETY_REJECTION_REASON])

        result = combine(classification, publish_date_valid, self.cutoff)
        if not result.is_valid:
            logger.info(f"Rejected {candidate.url}: {'; '.join(result.reasons[:3])}")
        return result

"""
Cheap, local checks that run before any classification call.
"""
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from dateutil import parser as date_parser

from src.core.data_types import ArticleCandidate

ERROR_PATTERNS = (
    "error 404",
    "page not found",
    "page doesn't exist",
    "page does not exist",
    "oops, it looks like",
    "we can't find that page",
    "the page you are looking for",
    "sorry, but this page doesn't exist",
    "this page is not available",
    "content not found",
)

GENERIC_PATTERNS = (
    "latest updates from",
    "recent developments and initiatives",
    "continues to focus on innovation",
    "discusses recent developments",
    "this article discusses recent",
    "organization continues to focus",
)

GENERIC_TITLES = (
    "latest updates",
    "recent updates",
    "latest news",
    "recent news",
    "updates from",
    "news from",
)

DETAIL_MARKERS = (
    re.compile(r"\d{4}"),                   # year
    re.compile(r"\d{1,2}[/-]\d{1,2}"),      # date
    re.compile(r"\$[\d,]+"),                # amount
    re.compile(r"\d+%"),                    # percentage
    re.compile(r"[A-Z][a-z]+ [A-Z][a-z]+"),  # proper noun bigram
)

ERROR_URL_PATTERN = re.compile(r"(^|[/_.?=&-])(error|404|not-found)([/_.?=&-]|$)", re.IGNORECASE)

# Content at or below DETAIL_MIN_LENGTH never counts as specific; content
# shorter than SHORT_CONTENT_LENGTH must carry a detail marker.
DETAIL_MIN_LENGTH = 300
SHORT_CONTENT_LENGTH = 500

ERROR_PAGE_REASON = "Article content is an error message, not an actual article"
FABRICATED_REASON = "Content appears to be fabricated rather than scraped from actual article"


@dataclass
class HeuristicCheck:
    is_valid: bool
    reasons: List[str] = field(default_factory=list)


def has_specific_details(content: str) -> bool:
    if len(content) <= DETAIL_MIN_LENGTH:
        return False
    return any(marker.search(content) for marker in DETAIL_MARKERS)


def detect_error_page(candidate: ArticleCandidate) -> HeuristicCheck:
    """
    Reject error pages, templated placeholder text and thin content that
    looks generated rather than scraped.
    """
    content = candidate.content or ""
    content_lower = content.lower()
    title = (candidate.title or "").lower()
    summary = (candidate.summary or "").lower()
    fields = (content_lower, title, summary)

    for pattern in ERROR_PATTERNS:
        if any(pattern in text for text in fields):
            return HeuristicCheck(False, [ERROR_PAGE_REASON, f'Detected error pattern: "{pattern}"'])

    reasons = []
    has_generic_content = any(pattern in text for pattern in GENERIC_PATTERNS for text in fields)
    has_generic_title = any(pattern in title for pattern in GENERIC_TITLES)
    if has_generic_content or has_generic_title:
        reasons.append("Article content appears to be generated placeholder text")
        reasons.append("Detected generic content patterns suggesting fake content")

    if not has_specific_details(content) and len(content) < SHORT_CONTENT_LENGTH:
        reasons.append("Article lacks specific details (names, dates, amounts) suggesting generated content")
        reasons.append("Content is too short and generic to be a real news article")

    if ERROR_URL_PATTERN.search(candidate.url or ""):
        reasons.append("URL suggests this is an error page")

    if reasons:
        reasons.append(FABRICATED_REASON)
        return HeuristicCheck(False, reasons)
    return HeuristicCheck(True)


def parse_publish_datetime(value: Optional[str]) -> Optional[datetime]:
    if not isinstance(value, str) or value.strip().upper() in ("", "N/A", "UNKNOWN"):
        return None
    try:
        return date_parser.parse(value.strip())
    except (ValueError, OverflowError):
        return None


def parse_publish_date(value: Optional[str]) -> Optional[date]:
    published = parse_publish_datetime(value)
    return published.date() if published else None


def check_publish_date(value: Optional[str], cutoff: date) -> bool:
    """
    True unless the date parses and falls before the cutoff. Missing or
    unreadable dates are accepted.
    """
    published = parse_publish_date(value)
    if published is None:
        return True
    return published >= cutoff

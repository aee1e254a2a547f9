"""
Relevance / sentiment / content-type classification through the LLM client.
"""
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.core.ai_client import LLMClient
from src.core.config import settings
from src.core.data_types import ArticleCandidate, Classification
from src.core.exceptions import ClassificationError
from src.core.models import ContentType, Relevance, Sentiment
from src.core.utils import truncate

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an expert content analyst. Your job is to decide whether an article should be catalogued for an organization, based on strict quality and relevance criteria.

CRITERIA:

1. ORGANIZATION SENTIMENT: How does this article portray the organization?
   - positive: achievements, positive impact, good news about the organization
   - neutral: factual reporting without positive or negative bias
   - negative: criticism, scandals, negative events or unfavorable coverage

2. CONTENT TYPE:
   - news: actual news articles about events, developments, impact stories
   - press_release: official announcements or promotional content
   - blog_post: opinion pieces, thought leadership, personal perspectives
   - list_view: directories, lists of articles, index or navigation pages
   - other: documentation, technical specs, administrative content

3. ORGANIZATION RELEVANCE:
   - high: the organization is the main subject (>30% of content)
   - medium: mentioned substantially but not the main focus (10-30%)
   - low: brief mention or passing reference (<10%)

4. SENTIMENT SCORE (integer from -1 to 3):
   -1: the organization is mentioned negatively
    0: the organization is not mentioned, or only in passing context
    1: mentioned but not the main focus (brief mention, quoted source)
    2: the organization is the main focus and the article is informational
    3: the organization is the main focus and the article is about its social impact

Respond with a JSON object with keys: organization_sentiment, content_type,
organization_relevance, sentiment_score (integer), reasoning (string),
specific_issues (list of strings)."""

SENTIMENT_SCORE_RANGE = (-1, 3)


class ClassificationPayload(BaseModel):
    """Shape of the classifier's JSON answer."""
    model_config = ConfigDict(populate_by_name=True)

    organization_sentiment: Sentiment = Field(alias="organizationSentiment")
    content_type: ContentType = Field(alias="contentType")
    organization_relevance: Relevance = Field(alias="organizationRelevance")
    sentiment_score: Optional[int] = Field(default=None, alias="sentimentScore")
    reasoning: str = ""
    specific_issues: List[str] = Field(default_factory=list, alias="specificIssues")

    @field_validator("organization_sentiment", "content_type", "organization_relevance", mode="before")
    @classmethod
    def normalize_enum(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace(" ", "_")
        return v

    @field_validator("sentiment_score", mode="before")
    @classmethod
    def bound_score(cls, v):
        # an unusable score is dropped, not fatal
        if v is None or isinstance(v, bool):
            return None
        try:
            score = int(v)
        except (TypeError, ValueError):
            return None
        low, high = SENTIMENT_SCORE_RANGE
        return score if low <= score <= high else None

    @field_validator("specific_issues", mode="before")
    @classmethod
    def drop_empty_issues(cls, v):
        if v is None:
            return []
        return [str(issue) for issue in v if issue]


def build_prompt(candidate: ArticleCandidate, max_chars: int) -> str:
    return f"""Analyze this article for the organization "{candidate.organization_name}":

URL: {candidate.url}
Title: {candidate.title}
Summary: {candidate.summary}
Published: {candidate.published_at or 'Unknown'}

Content Preview:
{truncate(candidate.content, max_chars)}

Classify this article:"""


class LLMContentClassifier:
    def __init__(self, llm: Optional[LLMClient] = None, max_chars: Optional[int] = None):
        self.llm = llm or LLMClient()
        self.max_chars = max_chars or settings.classification_max_chars

    async def classify(self, candidate: ArticleCandidate) -> Classification:
        """Raises ClassificationError when the call fails or the answer is unusable."""
        try:
            data = await self.llm.generate_json(build_prompt(candidate, self.max_chars), system_prompt=SYSTEM_PROMPT)
        except Exception as e:
            raise ClassificationError(f"Classification call failed: {e}") from e

        try:
            payload = ClassificationPayload.model_validate(data)
        except ValidationError as e:
            raise ClassificationError(f"Classification payload invalid: {e}") from e

        return Classification(
            sentiment=payload.organization_sentiment,
            content_type=payload.content_type,
            relevance=payload.organization_relevance,
            reasoning=payload.reasoning,
            issues=payload.specific_issues,
            sentiment_score=payload.sentiment_score,
        )

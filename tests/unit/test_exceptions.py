"""
Tests for the soft/hard classification of discovery source failures.
"""
import pytest

from src.core.exceptions import (
    FailureSeverity,
    MalformedUrl,
    QuotaExhausted,
    SourceExhausted,
    SourceUnavailable,
    classify_source_error,
)


@pytest.mark.parametrize("exc", [
    QuotaExhausted("out of credits"),
    SourceExhausted("no more pages"),
    SourceUnavailable("map failed", status_code=402),
    SourceUnavailable("search failed", status_code=429),
    RuntimeError("Firecrawl map failed: 402 - Insufficient credits"),
    RuntimeError("Payment Required"),
    RuntimeError("Daily quota exceeded for project"),
])
def test_soft_failures(exc):
    assert classify_source_error(exc) == FailureSeverity.SOFT


@pytest.mark.parametrize("exc", [
    SourceUnavailable("HTTP 500 from https://hope.example.org/news", status_code=500),
    TimeoutError("timed out"),
    ValueError("unexpected payload"),
])
def test_hard_failures(exc):
    assert classify_source_error(exc) == FailureSeverity.HARD


def test_malformed_url_message():
    assert "Invalid URL format" in str(MalformedUrl("not a url"))

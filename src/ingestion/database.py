"""
Database models for the ingestion pipeline.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database import Base
from src.core.models import ArticleStatus, BatchStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrganizationModel(Base):
    """
    Tracked organization. Referenced by batches and articles, never owned by them.
    """
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    website: Mapped[Optional[str]] = mapped_column(String(500))
    news_url: Mapped[Optional[str]] = mapped_column(String(500))  # curated news/press index page
    tags: Mapped[Optional[List[str]]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self):
        return f"<Organization(name='{self.name}')>"


class DiscoveryBatchModel(Base):
    """
    One discovery-and-ingest run for one organization. Retained for audit.

    status walks discovering -> ready_for_processing -> processing -> completed | failed
    (discovering -> failed when discovery itself raises).
    """
    __tablename__ = "discovery_batches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), index=True, nullable=False)
    status: Mapped[str] = mapped_column(String(30), default=BatchStatus.DISCOVERING.value, index=True)
    timeframe_days: Mapped[int] = mapped_column(Integer, default=90)

    discovered_urls: Mapped[List[str]] = mapped_column(JSON, default=list)
    adapter_counts: Mapped[Optional[Dict[str, int]]] = mapped_column(JSON, default=dict)
    adapter_errors: Mapped[Optional[Dict[str, str]]] = mapped_column(JSON, default=dict)

    total_urls: Mapped[int] = mapped_column(Integer, default=0)
    processed_urls: Mapped[int] = mapped_column(Integer, default=0)
    successful_urls: Mapped[int] = mapped_column(Integer, default=0)
    duplicate_urls: Mapped[int] = mapped_column(Integer, default=0)
    failed_urls: Mapped[int] = mapped_column(Integer, default=0)
    processing_results: Mapped[Optional[List[dict]]] = mapped_column(JSON, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    discovered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    processing_started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<DiscoveryBatch(id={self.id}, org={self.organization_id}, status={self.status}, urls={self.total_urls})>"


class ArticleModel(Base):
    """
    One URL's ingested content. Rejected articles are stored too, with their reasons.
    """
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(ForeignKey("organizations.id"), index=True, nullable=False)
    url: Mapped[str] = mapped_column(String(2000), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    content: Mapped[Optional[str]] = mapped_column(Text)
    author: Mapped[Optional[str]] = mapped_column(String(255))
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(2000))
    keywords: Mapped[Optional[List[str]]] = mapped_column(JSON, default=list)

    # Classification outputs
    sentiment: Mapped[Optional[str]] = mapped_column(String(20))
    sentiment_score: Mapped[Optional[int]] = mapped_column(Integer)
    content_type: Mapped[Optional[str]] = mapped_column(String(30))
    relevance: Mapped[Optional[str]] = mapped_column(String(20))
    validation_reasons: Mapped[Optional[List[str]]] = mapped_column(JSON, default=list)

    status: Mapped[str] = mapped_column(String(20), default=ArticleStatus.DRAFT.value, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("organization_id", "url", name="uq_articles_organization_url"),
    )

    def __repr__(self):
        return f"<Article(id={self.id}, status={self.status}, url='{self.url[:60]}')>"

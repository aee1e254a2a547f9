"""
Ingestion store: the persistence contract used by the discovery orchestrator
and the batch lifecycle manager.

Every method opens its own short-lived session from the injected factory, so
callers running concurrently inside one executor chunk never share a session.
"""
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.database import async_session_factory
from src.core.exceptions import PersistenceConflict
from src.core.models import BatchStatus
from src.ingestion.database import ArticleModel, DiscoveryBatchModel, OrganizationModel

logger = logging.getLogger(__name__)

# Keep IN (...) lists well below driver parameter limits
_LOOKUP_CHUNK = 500


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


class IngestionStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session_factory):
        self.session_factory = session_factory

    # --- Organizations ---

    async def get_organization(self, organization_id: int) -> Optional[OrganizationModel]:
        async with self.session_factory() as session:
            return await session.get(OrganizationModel, organization_id)

    async def list_organizations(self, organization_ids: Optional[Sequence[int]] = None) -> List[OrganizationModel]:
        stmt = select(OrganizationModel).order_by(OrganizationModel.id)
        if organization_ids:
            stmt = stmt.where(OrganizationModel.id.in_(list(organization_ids)))
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def create_organization(self, name: str, website: Optional[str] = None,
                                  news_url: Optional[str] = None, tags: Optional[List[str]] = None) -> OrganizationModel:
        async with self.session_factory() as session:
            org = OrganizationModel(name=name, website=website, news_url=news_url, tags=tags or [])
            session.add(org)
            await session.commit()
            return org

    # --- Articles ---

    async def exists_by_url(self, organization_id: int, url: str) -> bool:
        stmt = select(ArticleModel.id).where(
            ArticleModel.organization_id == organization_id,
            ArticleModel.url == url,
        ).limit(1)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def find_existing_urls(self, organization_id: int, urls: Iterable[str]) -> Set[str]:
        """Bulk dedup lookup: which of `urls` are already stored for the organization."""
        urls = list(urls)
        existing: Set[str] = set()
        if not urls:
            return existing
        async with self.session_factory() as session:
            for start in range(0, len(urls), _LOOKUP_CHUNK):
                chunk = urls[start:start + _LOOKUP_CHUNK]
                result = await session.execute(
                    select(ArticleModel.url).where(
                        ArticleModel.organization_id == organization_id,
                        ArticleModel.url.in_(chunk),
                    )
                )
                existing.update(result.scalars().all())
        return existing

    async def create_article(self, organization_id: int, url: str, **fields: Any) -> ArticleModel:
        """Insert an article. Raises PersistenceConflict when the URL is already stored."""
        values = {key: _plain(value) for key, value in fields.items()}
        async with self.session_factory() as session:
            article = ArticleModel(organization_id=organization_id, url=url, **values)
            session.add(article)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise PersistenceConflict(organization_id, url) from e
            return article

    # --- Discovery batches ---

    async def create_discovery_batch(self, organization_id: int, timeframe_days: int) -> DiscoveryBatchModel:
        async with self.session_factory() as session:
            batch = DiscoveryBatchModel(
                organization_id=organization_id,
                status=BatchStatus.DISCOVERING.value,
                timeframe_days=timeframe_days,
                discovered_urls=[],
                total_urls=0,
                processed_urls=0,
            )
            session.add(batch)
            await session.commit()
            logger.info(f"Created discovery batch {batch.id} for organization {organization_id}")
            return batch

    async def update_discovery_batch(self, batch_id: int, **fields: Any) -> Optional[DiscoveryBatchModel]:
        values = {key: _plain(value) for key, value in fields.items()}
        async with self.session_factory() as session:
            await session.execute(
                update(DiscoveryBatchModel).where(DiscoveryBatchModel.id == batch_id).values(**values)
            )
            await session.commit()
            return await session.get(DiscoveryBatchModel, batch_id, populate_existing=True)

    async def get_discovery_batch(self, batch_id: int) -> Optional[DiscoveryBatchModel]:
        async with self.session_factory() as session:
            return await session.get(DiscoveryBatchModel, batch_id)

    async def list_ready_batches(self, batch_ids: Optional[Sequence[int]] = None,
                                 limit: Optional[int] = None) -> List[DiscoveryBatchModel]:
        stmt = select(DiscoveryBatchModel).where(
            DiscoveryBatchModel.status == BatchStatus.READY_FOR_PROCESSING.value
        )
        if batch_ids:
            stmt = stmt.where(DiscoveryBatchModel.id.in_(list(batch_ids)))
        stmt = stmt.order_by(DiscoveryBatchModel.discovered_at.asc(), DiscoveryBatchModel.id.asc())
        if limit:
            stmt = stmt.limit(limit)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def list_recent_batches(self, limit: int = 50) -> List[DiscoveryBatchModel]:
        stmt = select(DiscoveryBatchModel).order_by(
            DiscoveryBatchModel.started_at.desc(), DiscoveryBatchModel.id.desc()
        ).limit(limit)
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def batch_totals(self) -> Dict[str, int]:
        """Aggregate counters across every batch."""
        stmt = select(
            func.count(DiscoveryBatchModel.id),
            func.coalesce(func.sum(DiscoveryBatchModel.total_urls), 0),
            func.coalesce(func.sum(DiscoveryBatchModel.processed_urls), 0),
            func.coalesce(func.sum(DiscoveryBatchModel.successful_urls), 0),
            func.coalesce(func.sum(DiscoveryBatchModel.duplicate_urls), 0),
            func.coalesce(func.sum(DiscoveryBatchModel.failed_urls), 0),
        )
        active_stmt = select(func.count(DiscoveryBatchModel.id)).where(
            DiscoveryBatchModel.status.in_([
                BatchStatus.DISCOVERING.value,
                BatchStatus.READY_FOR_PROCESSING.value,
                BatchStatus.PROCESSING.value,
            ])
        )
        async with self.session_factory() as session:
            row = (await session.execute(stmt)).one()
            active = (await session.execute(active_stmt)).scalar_one()
        return {
            "total_batches": int(row[0]),
            "total_urls_discovered": int(row[1]),
            "total_urls_processed": int(row[2]),
            "total_successful": int(row[3]),
            "total_duplicates": int(row[4]),
            "total_failed": int(row[5]),
            "active_batches": int(active),
        }

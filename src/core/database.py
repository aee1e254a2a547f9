# ──── Usage Guide ────
# MODULE CODE (src/ingestion/*, src/web/*):
#   Go through IngestionStore, which takes async_session_factory by default.
#   Pattern: async with self.session_factory() as session:
#                result = await session.execute(select(Model).where(...))
#
# The store opens one short-lived session per operation, so tasks running
# concurrently inside an executor chunk never share a session.

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from src.core.config import settings

class ToDictMixin:
    """Mixin to add dictionary serialization to models."""
    def to_dict(self):
        """Convert model instance to dictionary."""
        from sqlalchemy import inspect
        import datetime
        from enum import Enum

        result = {}
        for key in inspect(self).mapper.column_attrs.keys():
            value = getattr(self, key)
            if isinstance(value, (datetime.datetime, datetime.date)):
                result[key] = value.isoformat()
            elif isinstance(value, Enum):
                result[key] = value.value
            else:
                result[key] = value
        return result

class Base(ToDictMixin, DeclarativeBase):
    metadata = MetaData()

# ──── Single Async Engine ────
engine = create_async_engine(settings.async_database_url, echo=False, future=True)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

async def init_db(bind=None):
    """Create all tables registered on Base."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

# ──── End of Database Configuration ────

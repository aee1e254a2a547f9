"""
Core Module - Shared Infrastructure.
"""

from src.core.config import settings, Settings
from src.core.database import Base, async_session_factory, init_db
from src.core.models import BatchStatus, ArticleStatus, ItemStatus

__all__ = [
    "settings",
    "Settings",
    "Base",
    "async_session_factory",
    "init_db",
    "BatchStatus",
    "ArticleStatus",
    "ItemStatus",
]

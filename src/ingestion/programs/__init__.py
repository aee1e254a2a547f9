from .discovery import DiscoveryOrchestrator
from .processing import ArticleProcessor, BatchLifecycleManager

__all__ = ["DiscoveryOrchestrator", "ArticleProcessor", "BatchLifecycleManager"]

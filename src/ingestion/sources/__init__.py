from src.ingestion.sources.base import DiscoverySource, HttpSource
from src.ingestion.sources.news_feed_source import NewsFeedSource
from src.ingestion.sources.search_source import GoogleSearchSource
from src.ingestion.sources.site_map_source import SiteMapSource

__all__ = [
    "DiscoverySource",
    "HttpSource",
    "GoogleSearchSource",
    "NewsFeedSource",
    "SiteMapSource",
]

"""
URL heuristics shared by the discovery sources.
"""
import re
from typing import Iterable, List, Optional
from urllib.parse import urldefrag, urlparse

from src.core.utils import is_http_url

# Paths that index or syndicate content rather than hold an article
NON_ARTICLE_PATTERNS = [
    re.compile(r"/(category|categories|tag|tags|page|archive|archives|feed|author)(/|$)", re.IGNORECASE),
    re.compile(r"\.(xml|rss)$", re.IGNORECASE),
    re.compile(r"/rss(/|$)", re.IGNORECASE),
]

ARTICLE_SEGMENT = re.compile(r"/(news|article|articles|story|stories|press|blog|media)/", re.IGNORECASE)
DATE_SEGMENT = re.compile(r"/(19|20)\d{2}/(0?[1-9]|1[0-2])/")

# Site-map filtering
SITE_NEWS_PATTERNS = [
    re.compile(rf"/{segment}/", re.IGNORECASE)
    for segment in ("news", "media", "blog", "press", "stories", "articles", "updates", "announcements", "releases")
]
SITE_FALLBACK_KEYWORDS = ("news", "press", "blog", "story", "update")


def path_depth(url: str) -> int:
    return len([segment for segment in urlparse(url).path.split("/") if segment])


def is_non_article(url: str) -> bool:
    path = urlparse(url).path
    if path in ("", "/"):
        return True
    return any(pattern.search(path) for pattern in NON_ARTICLE_PATTERNS)


def looks_like_article(url: str) -> bool:
    """
    Article-shape heuristic: a news-ish segment, a /YYYY/MM/ segment,
    or a path at least two segments deep.
    """
    # trailing slash so a final /news or /2024/05 segment still matches
    path = urlparse(url).path.rstrip("/") + "/"
    return (
        bool(ARTICLE_SEGMENT.search(path))
        or bool(DATE_SEGMENT.search(path))
        or path_depth(url) >= 2
    )


def is_candidate_article_url(url: str, page_url: Optional[str] = None) -> bool:
    """Full curated-feed link filter."""
    if not is_http_url(url):
        return False
    if page_url and url.rstrip("/") == page_url.rstrip("/"):
        return False
    if is_non_article(url):
        return False
    return looks_like_article(url)


def dedupe_preserving_order(urls: Iterable[str]) -> List[str]:
    seen = set()
    unique = []
    for url in urls:
        if url not in seen:
            seen.add(url)
            unique.append(url)
    return unique


def strip_fragment(url: str) -> str:
    return urldefrag(url)[0]


def filter_site_map_links(links: Iterable[str], organization_name: str,
                          limit: int = 50, fallback_limit: int = 30) -> List[str]:
    """
    Keep news-shaped links from a site map. When none match, fall back to links
    mentioning the organization or a news keyword.
    """
    links = [link for link in links if isinstance(link, str) and is_http_url(link)]

    news_links = [
        link for link in links
        if not any(marker in link for marker in ("?", "#", "/page/", "/archive/"))
        and any(pattern.search(link) for pattern in SITE_NEWS_PATTERNS)
    ]
    if news_links:
        return dedupe_preserving_order(news_links)[:limit]

    org_lower = organization_name.lower()
    fallback = [
        link for link in links
        if org_lower in link.lower() or any(keyword in link.lower() for keyword in SITE_FALLBACK_KEYWORDS)
    ]
    return dedupe_preserving_order(fallback)[:fallback_limit]

"""
Tests for the URL heuristics used by the discovery sources.
"""
from src.ingestion.ops.url_filters import (
    dedupe_preserving_order,
    filter_site_map_links,
    is_candidate_article_url,
    is_non_article,
    looks_like_article,
)


class TestArticleHeuristics:

    def test_news_segment_is_article(self):
        assert looks_like_article("https://hope.example.org/news/water-plant-opens")

    def test_date_segment_is_article(self):
        assert looks_like_article("https://hope.example.org/2024/05/water-plant")

    def test_deep_path_is_article(self):
        assert looks_like_article("https://hope.example.org/updates/water-plant")

    def test_shallow_path_is_not_article(self):
        assert not looks_like_article("https://hope.example.org/about")

    def test_non_article_patterns(self):
        for url in (
            "https://hope.example.org/news/category/water",
            "https://hope.example.org/news/tag/kenya",
            "https://hope.example.org/news/page/2",
            "https://hope.example.org/archive/2023",
            "https://hope.example.org/news/feed",
            "https://hope.example.org/sitemap.xml",
            "https://hope.example.org/news.rss",
            "https://hope.example.org/",
        ):
            assert is_non_article(url), url

    def test_candidate_filter(self):
        page = "https://hope.example.org/news"
        assert is_candidate_article_url("https://hope.example.org/news/water-plant", page)
        assert not is_candidate_article_url("https://hope.example.org/news/", page)
        assert not is_candidate_article_url("mailto:press@hope.example.org", page)
        assert not is_candidate_article_url("/news/relative-link", page)
        assert not is_candidate_article_url("https://hope.example.org/news/category/health", page)


class TestSiteMapFilter:

    def test_keeps_news_shaped_links(self):
        links = [
            "https://hope.example.org/",
            "https://hope.example.org/about",
            "https://hope.example.org/news/water-plant",
            "https://hope.example.org/press/annual-report",
            "https://hope.example.org/news/water-plant",
            "https://hope.example.org/news/?page=2",
            "https://hope.example.org/blog/page/3",
        ]
        assert filter_site_map_links(links, "Hope Foundation") == [
            "https://hope.example.org/news/water-plant",
            "https://hope.example.org/press/annual-report",
        ]

    def test_fallback_when_nothing_news_shaped(self):
        links = [
            "https://hope.example.org/about",
            "https://hope.example.org/latest-update-kenya",
            "https://partner.example.com/grace-visit",
        ]
        assert filter_site_map_links(links, "Grace") == [
            "https://hope.example.org/latest-update-kenya",
            "https://partner.example.com/grace-visit",
        ]

    def test_limit(self):
        links = [f"https://hope.example.org/news/story-{i}" for i in range(80)]
        assert len(filter_site_map_links(links, "Hope", limit=50)) == 50


def test_dedupe_preserving_order():
    assert dedupe_preserving_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]

import asyncio

import pytest

from a11y_harness.application.url_selector import UrlSelectionConfig, UrlSelector
from helpers import FakeSitemapFetcher


def select(selector: UrlSelector, homepage: str) -> list[str]:
    return asyncio.run(selector.select_urls(homepage))


def test_no_sitemap_reachable_returns_homepage_only():
    fetcher = FakeSitemapFetcher()
    selector = UrlSelector(fetcher)

    assert select(selector, "https://example.com") == ["https://example.com"]
    # every conventional location was tried, relative to the normalized base
    assert [u for u, _ in fetcher.requested] == [
        "https://example.com/sitemap.xml",
        "https://example.com/sitemap_index.xml",
        "https://example.com/wp-sitemap.xml",
    ]


def test_sitemap_disabled_skips_fetching():
    fetcher = FakeSitemapFetcher({"https://x.com/sitemap.xml": ["https://x.com/a"]})
    selector = UrlSelector(fetcher, UrlSelectionConfig(use_sitemap=False))

    assert select(selector, "https://x.com") == ["https://x.com"]
    assert fetcher.requested == []


def test_fetcher_crash_degrades_to_homepage():
    selector = UrlSelector(FakeSitemapFetcher(crash=True))

    assert select(selector, "https://x.com") == ["https://x.com"]


def test_timeout_is_passed_to_fetcher():
    fetcher = FakeSitemapFetcher()
    selector = UrlSelector(fetcher, UrlSelectionConfig(sitemap_timeout_ms=1234))
    select(selector, "https://x.com/")

    assert {t for _, t in fetcher.requested} == {1234}


def test_falls_through_empty_location_to_next():
    fetcher = FakeSitemapFetcher({
        "https://x.com/sitemap.xml": [],
        "https://x.com/sitemap_index.xml": ["https://x.com/docs"],
        "https://x.com/wp-sitemap.xml": ["https://x.com/never"],
    })
    selector = UrlSelector(fetcher)

    assert select(selector, "https://x.com") == ["https://x.com", "https://x.com/docs"]


def test_priority_patterns_put_root_and_about_before_blog():
    fetcher = FakeSitemapFetcher({
        "https://x.com/sitemap.xml": ["https://x.com/blog", "https://x.com/about", "https://x.com/"],
    })
    config = UrlSelectionConfig(priority_patterns=(r"/$", r"(?i)/about"))
    urls = select(UrlSelector(fetcher, config), "https://x.com")

    assert urls[0] == "https://x.com"
    assert urls.index("https://x.com/blog") > urls.index("https://x.com/about")
    assert urls.index("https://x.com/blog") > urls.index("https://x.com/")


def test_equal_scores_keep_sitemap_order():
    selector = UrlSelector(FakeSitemapFetcher())
    urls = ["https://x.com/c", "https://x.com/a", "https://x.com/about", "https://x.com/b"]

    assert selector.prioritize(urls) == [
        "https://x.com/about",
        "https://x.com/c",
        "https://x.com/a",
        "https://x.com/b",
    ]


def test_weighted_priority_prefers_earlier_patterns():
    config = UrlSelectionConfig(priority_patterns=(r"(?i)/contact", r"(?i)/about"), weighted_priority=True)
    selector = UrlSelector(FakeSitemapFetcher(), config)

    assert selector.score("https://x.com/contact") == 20
    assert selector.score("https://x.com/about") == 10
    assert selector.prioritize(["https://x.com/about", "https://x.com/contact"]) == [
        "https://x.com/contact",
        "https://x.com/about",
    ]


def test_unweighted_score_counts_matching_patterns():
    selector = UrlSelector(FakeSitemapFetcher())

    assert selector.score("https://x.com/about/") == 2
    assert selector.score("https://x.com/ABOUT") == 1
    assert selector.score("https://x.com/blog/post") == 0


def test_result_is_capped_and_deduplicated():
    homepage = "https://x.com"
    sitemap = [homepage] + [f"https://x.com/p{i % 7}" for i in range(40)]
    fetcher = FakeSitemapFetcher({"https://x.com/sitemap.xml": sitemap})

    for max_urls in (1, 3, 5, 10):
        urls = select(UrlSelector(fetcher, UrlSelectionConfig(max_urls=max_urls)), homepage)
        assert urls[0] == homepage
        assert len(urls) <= max_urls
        assert len(urls) == len(set(urls))

    urls = select(UrlSelector(fetcher, UrlSelectionConfig(max_urls=100)), homepage)
    assert len(urls) == 8


def test_foreign_domain_urls_are_kept():
    fetcher = FakeSitemapFetcher({"https://x.com/sitemap.xml": ["https://cdn.other.org/page"]})

    assert select(UrlSelector(fetcher), "https://x.com") == ["https://x.com", "https://cdn.other.org/page"]


def test_slow_location_is_abandoned_for_the_next():
    fetcher = FakeSitemapFetcher(
        {
            "https://x.com/sitemap.xml": ["https://x.com/late"],
            "https://x.com/sitemap_index.xml": ["https://x.com/docs"],
        },
        delays={"https://x.com/sitemap.xml": 5},
    )
    selector = UrlSelector(fetcher, UrlSelectionConfig(sitemap_timeout_ms=50))

    assert select(selector, "https://x.com") == ["https://x.com", "https://x.com/docs"]


def test_max_urls_must_be_positive():
    with pytest.raises(ValueError):
        UrlSelectionConfig(max_urls=0)

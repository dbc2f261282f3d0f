"""
Check strategies.

Run in order by the checker:
- Direct feed (URLs that look like feeds)
- Page fetch (HTML, or XML served in place)
- Platform policy (login-gated social networks)
- Feed autodiscovery
- HTML latest-post extraction
"""

from .base import CheckContext, CheckStrategy
from .feed import DirectFeedStrategy, FeedFetcher, FeedItem, parse_feed
from .html import (
    FeedDiscoveryStrategy,
    HtmlExtractionStrategy,
    PageFetchStrategy,
    extract_latest_post,
)
from .platform import PlatformPolicyStrategy, check_platform_limitation


def default_strategies(settings) -> list[CheckStrategy]:
    """The standard fallback chain, in order."""
    return [
        DirectFeedStrategy(settings),
        PageFetchStrategy(settings),
        PlatformPolicyStrategy(settings),
        FeedDiscoveryStrategy(settings),
        HtmlExtractionStrategy(settings),
    ]


__all__ = [
    "CheckContext",
    "CheckStrategy",
    "DirectFeedStrategy",
    "FeedDiscoveryStrategy",
    "FeedFetcher",
    "FeedItem",
    "HtmlExtractionStrategy",
    "PageFetchStrategy",
    "PlatformPolicyStrategy",
    "check_platform_limitation",
    "default_strategies",
    "extract_latest_post",
    "parse_feed",
]

"""
RSS/Atom feed fetching and parsing.

Only the first item of a feed is used: feeds are taken to be newest-first,
and no dates are parsed or compared.
"""

from dataclasses import dataclass
from typing import Optional, Union

import feedparser
import httpx
from bs4 import BeautifulSoup

from .base import CheckContext, CheckStrategy, http_get
from ..change import is_new_content
from ..config import Settings
from ..exceptions import FeedParseError, FetchError
from ..logging_conf import get_logger
from ..models import ErrorKind, FetchOutcome

logger = get_logger(__name__)

FEED_ACCEPT = "application/rss+xml, application/atom+xml, application/xml, text/xml"


@dataclass
class FeedItem:
    """The latest item of a feed."""
    link: str
    title: str = ""
    description: str = ""

    @property
    def text(self) -> str:
        return f"{self.title}. {self.description}"


def _clean_html(text: str) -> str:
    """Remove HTML tags from text."""
    if "<" not in text:
        return text.strip()
    soup = BeautifulSoup(text, "lxml")
    return soup.get_text(separator=" ", strip=True)


def _entry_link(entry: dict) -> str:
    """Link text for RSS items, href for Atom entries."""
    link = entry.get("link")
    if link:
        return link.strip()
    for candidate in entry.get("links", []):
        href = candidate.get("href")
        if href:
            return href.strip()
    return ""


def _entry_body(entry: dict) -> str:
    body = entry.get("summary") or entry.get("description") or ""
    if not body and entry.get("content"):
        body = entry["content"][0].get("value", "")
    return _clean_html(body)


def parse_feed(data: Union[bytes, str], strict: bool = False) -> Optional[FeedItem]:
    """
    Parse an RSS or Atom document and return its first item.

    Parsing is permissive: feedparser tolerates unknown namespaces, mixed
    case and malformed markup.

    Args:
        data: Raw feed body
        strict: Raise instead of returning None when the body is not XML at all

    Returns:
        The first item with a resolvable link, or None when this is not a feed

    Raises:
        FeedParseError: in strict mode, when the body could not be parsed
    """
    feed = feedparser.parse(data)

    if not feed.entries:
        if strict and feed.bozo and not feed.get("version"):
            raise FeedParseError(f"Invalid feed: {feed.get('bozo_exception')}")
        return None

    entry = feed.entries[0]
    link = _entry_link(entry)
    if not link:
        return None

    return FeedItem(
        link=link,
        title=_clean_html(entry.get("title", "")),
        description=_entry_body(entry),
    )


def feed_outcome(item: FeedItem, previous: Optional[str], max_chars: int = 500) -> FetchOutcome:
    """Turn a feed item into an outcome; the item link is the content identity."""
    return FetchOutcome(
        has_new_content=is_new_content(item.link, previous),
        content_identity=item.link,
        content_text=item.text[:max_chars],
    )


class FeedFetcher:
    """
    Fetches a feed URL and reports its latest item.
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    async def fetch(
        self,
        client: httpx.AsyncClient,
        feed_url: str,
        previous: Optional[str],
        *,
        discovered: bool = False,
        fallback: bool = True,
    ) -> Optional[FetchOutcome]:
        """
        Fetch and parse a feed.

        Args:
            feed_url: Absolute feed URL
            previous: Identity from the last check
            discovered: Feed link found in a page (shorter timeout)
            fallback: Whether the caller can fall back to the HTML path

        Returns:
            FetchOutcome for a feed with a linked item. None when this is not
            a feed, or when the fetch failed and a fallback exists.
        """
        timeout = (
            self.settings.discovered_feed_timeout
            if discovered
            else self.settings.feed_timeout
        )

        try:
            response = await http_get(
                client,
                feed_url,
                accept=FEED_ACCEPT,
                timeout=timeout,
                user_agent=self.settings.user_agent,
            )
        except FetchError as e:
            logger.debug("feed_fetch_failed", url=feed_url, error=str(e))
            if fallback:
                return None
            return FetchOutcome.failure(ErrorKind.NETWORK, str(e))

        item = parse_feed(response.content)
        if item is None:
            logger.debug("not_a_feed", url=feed_url)
            return None

        outcome = feed_outcome(item, previous, self.settings.max_feed_text_chars)
        logger.info(
            "feed_fetched",
            url=feed_url,
            link=item.link,
            has_new_content=outcome.has_new_content,
        )
        return outcome


class DirectFeedStrategy(CheckStrategy):
    """Fetch URLs that look like feeds as feeds first."""

    name = "direct_feed"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.fetcher = FeedFetcher(settings)

    def applies_to(self, ctx: CheckContext) -> bool:
        return ctx.url_class.is_feed

    async def attempt(self, ctx: CheckContext) -> Optional[FetchOutcome]:
        return await self.fetcher.fetch(ctx.client, ctx.url, ctx.previous)

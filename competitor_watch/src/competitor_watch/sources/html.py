"""
HTML page fetching and latest-post extraction.

The heuristics here are pure functions over a BeautifulSoup tree so they can
be exercised against synthetic markup; only the strategies touch the network.
"""

import re
from typing import Optional, Union
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from .base import CheckContext, CheckStrategy, http_get
from .feed import FeedFetcher, feed_outcome, parse_feed
from ..change import is_new_content
from ..config import Settings
from ..exceptions import FeedParseError, FetchError
from ..logging_conf import get_logger
from ..models import ErrorKind, FetchOutcome

logger = get_logger(__name__)

PAGE_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"

NOT_FOUND_MESSAGE = "Could not find blog posts on this page."

# Elements that never hold the post list
BOILERPLATE_TAGS = ["script", "style", "nav", "footer", "header"]

FEED_LINK_SELECTOR = (
    'link[type="application/rss+xml"], link[type="application/atom+xml"]'
)

# Class/role hints for post lists, tried as one group (first match in document order)
CONTAINER_HINT_SELECTOR = ", ".join([
    ".post",
    ".blog-post",
    ".entry",
    "[class*='article']",
    "[class*='blog']",
    "[class*='post']",
    "[class*='news']",
    ".card",
    ".item",
    "[class*='card']",
    "[class*='item']",
    "section[class*='blog']",
    "section[class*='post']",
    ".content",
    "#content",
    "[role='main']",
])

POST_URL_PATTERNS = [
    re.compile(r"/blog/", re.IGNORECASE),
    re.compile(r"/post/", re.IGNORECASE),
    re.compile(r"/article/", re.IGNORECASE),
    re.compile(r"/news/", re.IGNORECASE),
    re.compile(r"/\d{4}/\d{2}/"),                  # /2024/01/
    re.compile(r"-\d+$"),                          # numeric id suffix
    re.compile(r"/[a-z0-9\-]+-[a-z0-9\-]+$"),      # hyphenated slug
]

FIRST_PASS_LINKS = 30
FIRST_PASS_MIN_TEXT = 5
SECOND_PASS_LINKS = 20
SECOND_PASS_MIN_TEXT = 10
MIN_ANCHOR_CONTEXT = 20

_WHITESPACE = re.compile(r"\s+")


def _collapse(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def strip_boilerplate(soup: BeautifulSoup) -> BeautifulSoup:
    """Remove scripts, styles and page chrome in place."""
    for tag in soup.find_all(BOILERPLATE_TAGS):
        tag.decompose()
    return soup


def parse_html(html: str) -> BeautifulSoup:
    """Parse a page and strip its boilerplate."""
    return strip_boilerplate(BeautifulSoup(html, "lxml"))


def find_feed_link(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """Return the absolute URL of the page's RSS/Atom autodiscovery link."""
    link = soup.select_one(FEED_LINK_SELECTOR)
    if link is None:
        return None
    href = (link.get("href") or "").strip()
    if not href:
        return None
    return urljoin(base_url, href)


def select_container(soup: BeautifulSoup) -> Tag:
    """
    Pick the most specific element likely to hold the post list.

    Order: <article>, class/role hints, <main>, <body>, whole document.
    """
    article = soup.find("article")
    if article is not None:
        return article

    hinted = soup.select_one(CONTAINER_HINT_SELECTOR)
    if hinted is not None:
        return hinted

    main = soup.find("main")
    if main is not None:
        return main

    if soup.body is not None:
        return soup.body
    return soup


def looks_like_post_url(url: str) -> bool:
    """Check if a URL is shaped like a single blog post or article."""
    return any(pattern.search(url) for pattern in POST_URL_PATTERNS)


def _resolve(href: Optional[str], base_url: str) -> Optional[str]:
    """Absolute URL for a followable link, None for links to skip."""
    if not href:
        return None
    href = href.strip()
    if not href or "#" in href or href.startswith(("mailto:", "tel:")):
        return None
    full_url = href if href.startswith("http") else urljoin(base_url, href)
    if urlparse(full_url).scheme not in ("http", "https"):
        return None
    return full_url


def _link_candidates(container: Tag, base_url: str, previous: Optional[str], limit: int):
    """Yield (url, anchor text) for the first `limit` links, minus skipped ones."""
    for anchor in container.find_all("a", href=True)[:limit]:
        full_url = _resolve(anchor.get("href"), base_url)
        if full_url is None:
            continue
        if full_url == base_url or full_url == previous:
            continue
        yield full_url, _collapse(anchor.get_text(" "))


def find_candidate_link(
    container: Tag,
    base_url: str,
    previous: Optional[str],
) -> tuple[Optional[str], Optional[str]]:
    """
    Find the link most likely to be the latest post.

    First pass: a post-shaped URL with some anchor text among the first 30
    links. Second pass: any link with a descriptive anchor among the first 20.
    Document order stands in for recency.

    Returns:
        (url, anchor text), or (None, None) when nothing qualifies
    """
    for full_url, text in _link_candidates(container, base_url, previous, FIRST_PASS_LINKS):
        if looks_like_post_url(full_url) and len(text) > FIRST_PASS_MIN_TEXT:
            return full_url, text

    for full_url, text in _link_candidates(container, base_url, previous, SECOND_PASS_LINKS):
        if len(text) > SECOND_PASS_MIN_TEXT:
            return full_url, text

    return None, None


def extract_latest_post(
    html: Union[str, BeautifulSoup],
    base_url: str,
    previous: Optional[str],
    max_context_chars: int = 1000,
) -> FetchOutcome:
    """
    Locate the latest post link on a page.

    Args:
        html: Page markup, or an already stripped soup
        base_url: The page URL, used to resolve relative links
        previous: Identity from the last check
        max_context_chars: Cap for container text used as summary material

    Returns:
        FetchOutcome whose identity is the post URL, or the page URL itself
        with CONTENT_NOT_FOUND when no candidate exists
    """
    soup = parse_html(html) if isinstance(html, str) else html
    container = select_container(soup)
    candidate, text = find_candidate_link(container, base_url, previous)

    if candidate is None:
        return FetchOutcome(
            has_new_content=False,
            content_identity=base_url,
            content_text=None,
            error_kind=ErrorKind.CONTENT_NOT_FOUND,
            message=NOT_FOUND_MESSAGE,
        )

    # Short anchors do not summarize well; use the surrounding container text
    if not text or len(text) < MIN_ANCHOR_CONTEXT:
        text = _collapse(container.get_text(" "))[:max_context_chars] or None

    return FetchOutcome(
        has_new_content=is_new_content(candidate, previous),
        content_identity=candidate,
        content_text=text,
    )


def _declares_xml(content_type: str) -> bool:
    return ("xml" in content_type or "rss" in content_type) and "html" not in content_type


def _is_xml_body(content_type: str, text: str) -> bool:
    return (
        "xml" in content_type
        or "rss" in content_type
        or text.lstrip().startswith("<?xml")
    )


class PageFetchStrategy(CheckStrategy):
    """
    Fetch the source URL itself.

    Handles fetch failures and XML bodies; otherwise leaves a stripped soup
    on the context for the strategies after it.
    """

    name = "page_fetch"

    async def attempt(self, ctx: CheckContext) -> Optional[FetchOutcome]:
        try:
            response = await http_get(
                ctx.client,
                ctx.url,
                accept=PAGE_ACCEPT,
                timeout=self.settings.page_timeout,
                user_agent=self.settings.user_agent,
            )
        except FetchError as e:
            logger.warning("page_fetch_error", url=ctx.url, error=str(e))
            return FetchOutcome.failure(ErrorKind.NETWORK, str(e))

        content_type = response.headers.get("content-type", "").lower()
        text = response.text

        # Login-gated platforms are decided by the platform policy, feed or not
        if not ctx.url_class.is_social and _is_xml_body(content_type, text):
            try:
                item = parse_feed(response.content, strict=_declares_xml(content_type))
            except FeedParseError as e:
                logger.warning("page_parse_error", url=ctx.url, error=str(e))
                return FetchOutcome.failure(ErrorKind.PARSE_FAILURE, str(e))
            if item is not None:
                logger.info("inline_feed_parsed", url=ctx.url, link=item.link)
                return feed_outcome(item, ctx.previous, self.settings.max_feed_text_chars)

        ctx.soup = parse_html(text)
        logger.debug("page_fetched", url=ctx.url, content_type=content_type, chars=len(text))
        return None


class FeedDiscoveryStrategy(CheckStrategy):
    """Follow the page's feed autodiscovery link; feeds beat scraped links."""

    name = "feed_discovery"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.fetcher = FeedFetcher(settings)

    def applies_to(self, ctx: CheckContext) -> bool:
        return ctx.soup is not None

    async def attempt(self, ctx: CheckContext) -> Optional[FetchOutcome]:
        feed_url = find_feed_link(ctx.soup, ctx.url)
        if feed_url is None:
            return None
        logger.debug("feed_discovered", url=ctx.url, feed_url=feed_url)
        return await self.fetcher.fetch(ctx.client, feed_url, ctx.previous, discovered=True)


class HtmlExtractionStrategy(CheckStrategy):
    """Last resort: scrape the page for its latest post link."""

    name = "html_extraction"

    def applies_to(self, ctx: CheckContext) -> bool:
        return ctx.soup is not None

    async def attempt(self, ctx: CheckContext) -> Optional[FetchOutcome]:
        outcome = extract_latest_post(
            ctx.soup,
            ctx.url,
            ctx.previous,
            max_context_chars=self.settings.max_context_chars,
        )
        if outcome.error_kind is ErrorKind.CONTENT_NOT_FOUND:
            logger.info("no_post_link_found", url=ctx.url)
        else:
            logger.info(
                "post_link_found",
                url=ctx.url,
                link=outcome.content_identity,
                has_new_content=outcome.has_new_content,
            )
        return outcome

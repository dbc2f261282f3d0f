"""
Tests for ChangeChecker, end to end against a fake web.

Tests:
- Feed, inline XML, discovered feed and scraped HTML paths
- Social platforms never report new content
- Every failure becomes an outcome, never an exception
- Batch checks keep order and isolate failures
"""

import pytest

from competitor_watch.checker import NO_FEED_MESSAGE, ChangeChecker, check_sync
from competitor_watch.models import CheckStatus, ErrorKind
from competitor_watch.sources import CheckStrategy
from competitor_watch.summarizer import PLACEHOLDER

from conftest import rss

FEED_URL = "https://ex.com/feed.xml"
BLOG_URL = "https://ex.com/blog"

BLOG_HTML = """<html><head><title>Blog</title></head><body>
<header><a href="/blog/2020/01/header-link">Header link to old post</a></header>
<article>
  <h2>Launch day</h2>
  <p>We are launching the new dashboard today. It ships to every customer this week.</p>
  <a href="/blog/2024/01/launch-day">Launch day is here</a>
</article>
</body></html>"""

FB_HTML = """<html><head>
<title>Acme | Facebook</title>
<meta property="og:description" content="Acme makes rockets for everyone.">
<link rel="alternate" type="application/rss+xml" href="https://www.facebook.com/acme/rss">
</head><body><article><a href="https://www.facebook.com/acme/posts/launch-day-123">Launch day post on facebook</a></article></body></html>"""


class TestFeedSources:
    """Tests for URLs that look like feeds."""

    @pytest.mark.asyncio
    async def test_first_check_reports_new_item(self, checker, web):
        web.add(FEED_URL, rss("https://ex.com/p1"), content_type="application/rss+xml")

        outcome = await checker.check(FEED_URL, None)

        assert outcome.has_new_content is True
        assert outcome.content_identity == "https://ex.com/p1"
        assert outcome.content_text == "T. D"
        assert outcome.error_kind is None
        assert outcome.status == CheckStatus.NEW_UPDATE

    @pytest.mark.asyncio
    async def test_second_check_with_same_identity(self, checker, web):
        """Feeding the identity back in reports nothing new."""
        web.add(FEED_URL, rss("https://ex.com/p1"), content_type="application/rss+xml")

        first = await checker.check(FEED_URL, None)
        second = await checker.check(FEED_URL, first.content_identity)

        assert second.has_new_content is False
        assert second.content_identity == "https://ex.com/p1"
        assert second.summary is None

    @pytest.mark.asyncio
    async def test_edited_title_is_not_new(self, checker, web):
        """Only the item link decides whether content is new."""
        web.add(FEED_URL, rss("https://ex.com/p1", title="Edited"), content_type="application/rss+xml")

        outcome = await checker.check(FEED_URL, "https://ex.com/p1")

        assert outcome.has_new_content is False

    @pytest.mark.asyncio
    async def test_new_item_is_summarized(self, checker, web):
        description = "We rebuilt the editor from scratch this quarter. It is twice as fast on large files."
        web.add(FEED_URL, rss("https://ex.com/p2", "Editor rewrite", description), content_type="application/rss+xml")

        outcome = await checker.check(FEED_URL, "https://ex.com/p1")

        assert outcome.has_new_content is True
        assert outcome.summary == (
            "We rebuilt the editor from scratch this quarter. "
            "It is twice as fast on large files."
        )

    @pytest.mark.asyncio
    async def test_short_feed_text_gets_placeholder(self, checker, web):
        web.add(FEED_URL, rss("https://ex.com/p1"), content_type="application/rss+xml")

        outcome = await checker.check(FEED_URL, None)

        assert outcome.summary == PLACEHOLDER

    @pytest.mark.asyncio
    async def test_feed_url_serving_html_falls_back_to_page(self, checker, web):
        """A feed-looking URL that serves HTML is scraped instead."""
        url = "https://ex.com/news/feed"
        web.add(url, BLOG_HTML)

        outcome = await checker.check(url, None)

        assert outcome.content_identity == "https://ex.com/blog/2024/01/launch-day"
        assert web.requested_urls == [url, url]


class TestHtmlSources:
    """Tests for generic pages."""

    @pytest.mark.asyncio
    async def test_article_link_is_identity(self, checker, web):
        web.add(BLOG_URL, BLOG_HTML)

        outcome = await checker.check(BLOG_URL, None)

        assert outcome.has_new_content is True
        assert outcome.content_identity == "https://ex.com/blog/2024/01/launch-day"
        # Short anchor: the summary comes from the article text
        assert outcome.summary == (
            "Launch day We are launching the new dashboard today. "
            "It ships to every customer this week."
        )

    @pytest.mark.asyncio
    async def test_page_request_headers_and_timeout(self, checker, web, settings):
        web.add(BLOG_URL, BLOG_HTML)

        await checker.check(BLOG_URL, None)

        request = web.request_for(BLOG_URL)
        assert "text/html" in request.headers["Accept"]
        assert request.headers["User-Agent"] == settings.user_agent
        assert request.extensions["timeout"]["read"] == 15

    @pytest.mark.asyncio
    async def test_discovered_feed_beats_scraping(self, checker, web):
        """A page's autodiscovery feed is used instead of its links."""
        html = BLOG_HTML.replace(
            "<title>Blog</title>",
            '<title>Blog</title><link rel="alternate" type="application/rss+xml" href="/blog/rss.xml">',
        )
        web.add(BLOG_URL, html)
        web.add("https://ex.com/blog/rss.xml", rss("https://ex.com/p9"), content_type="application/rss+xml")

        outcome = await checker.check(BLOG_URL, None)

        assert outcome.content_identity == "https://ex.com/p9"
        assert web.request_for("https://ex.com/blog/rss.xml").extensions["timeout"]["read"] == 10

    @pytest.mark.asyncio
    async def test_broken_discovered_feed_falls_back(self, checker, web):
        html = BLOG_HTML.replace(
            "<title>Blog</title>",
            '<title>Blog</title><link rel="alternate" type="application/rss+xml" href="/blog/rss.xml">',
        )
        web.add(BLOG_URL, html)
        web.add("https://ex.com/blog/rss.xml", "oops", status=500)

        outcome = await checker.check(BLOG_URL, None)

        assert outcome.content_identity == "https://ex.com/blog/2024/01/launch-day"
        assert outcome.error_kind is None

    @pytest.mark.asyncio
    async def test_inline_atom_body(self, checker, web):
        """XML served from a page URL is parsed as a feed."""
        atom = (
            '<?xml version="1.0"?><feed xmlns="http://www.w3.org/2005/Atom">'
            '<entry><title>Hello</title><link href="https://ex.com/a1"/><summary>World</summary></entry>'
            "</feed>"
        )
        web.add("https://ex.com/updates", atom, content_type="application/atom+xml")

        outcome = await checker.check("https://ex.com/updates", None)

        assert outcome.content_identity == "https://ex.com/a1"
        assert outcome.content_text == "Hello. World"

    @pytest.mark.asyncio
    async def test_declared_xml_garbage_is_parse_failure(self, checker, web):
        web.add("https://ex.com/updates", "this is not xml at all <<<", content_type="application/xml")

        outcome = await checker.check("https://ex.com/updates", None)

        assert outcome.has_new_content is False
        assert outcome.error_kind == ErrorKind.PARSE_FAILURE

    @pytest.mark.asyncio
    async def test_page_without_posts(self, checker, web):
        web.add(BLOG_URL, "<html><body><main><p>Coming soon</p></main></body></html>")

        outcome = await checker.check(BLOG_URL, None)

        assert outcome.has_new_content is False
        assert outcome.content_identity == BLOG_URL
        assert outcome.error_kind == ErrorKind.CONTENT_NOT_FOUND
        assert outcome.status == CheckStatus.ERROR


class TestSocialPlatforms:
    """Tests for login-gated platforms."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url,name", [
        ("https://www.facebook.com/acme", "Facebook"),
        ("https://www.linkedin.com/company/acme", "LinkedIn"),
    ])
    async def test_never_new_content(self, checker, web, url, name):
        """Feed links and post links on the page are ignored."""
        web.add(url, FB_HTML)

        outcome = await checker.check(url, None)

        assert outcome.has_new_content is False
        assert outcome.content_identity == url
        assert outcome.content_text == "Acme makes rockets for everyone."
        assert outcome.error_kind == ErrorKind.PLATFORM_LIMITATION
        assert outcome.message.startswith(f"{name} requires login")
        assert outcome.status == CheckStatus.LIMITED
        assert web.requested_urls == [url]

    @pytest.mark.asyncio
    async def test_feed_shaped_social_url(self, checker, web):
        url = "https://www.facebook.com/acme/feed"
        web.add(url, FB_HTML)

        outcome = await checker.check(url, None)

        assert outcome.error_kind == ErrorKind.PLATFORM_LIMITATION
        assert outcome.has_new_content is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url,content_type", [
        ("https://www.facebook.com/feeds/page.php?id=1&format=rss20", "application/rss+xml"),
        ("https://www.facebook.com/feeds/page.php?id=1&format=rss20", "text/html"),
        ("https://www.linkedin.com/company/acme", "application/xml"),
    ])
    async def test_feed_body_on_social_host(self, checker, web, url, content_type):
        """A social URL serving a feed is still only a platform limitation."""
        body = '<?xml version="1.0" encoding="utf-8"?>' + rss("https://www.facebook.com/acme/posts/1")
        web.add(url, body, content_type=content_type)

        outcome = await checker.check(url, None)

        assert outcome.has_new_content is False
        assert outcome.content_identity == url
        assert outcome.error_kind == ErrorKind.PLATFORM_LIMITATION
        assert outcome.summary is None

    @pytest.mark.asyncio
    async def test_unreachable_social_page(self, checker, web):
        url = "https://www.facebook.com/acme"
        web.refuse(url)

        outcome = await checker.check(url, None)

        assert outcome.error_kind == ErrorKind.NETWORK
        assert outcome.has_new_content is False


class TestFailures:
    """Every failure is returned, never raised."""

    @pytest.mark.asyncio
    async def test_connection_refused(self, checker, web):
        web.refuse("https://down.example.com/blog")

        outcome = await checker.check("https://down.example.com/blog", "https://down.example.com/blog/p1")

        assert outcome.has_new_content is False
        assert outcome.content_identity is None
        assert outcome.content_text is None
        assert outcome.error_kind == ErrorKind.NETWORK
        assert "Connection refused" in outcome.message

    @pytest.mark.asyncio
    async def test_http_error_status(self, checker, web):
        web.add(BLOG_URL, "not here", status=404)

        outcome = await checker.check(BLOG_URL, None)

        assert outcome.error_kind == ErrorKind.NETWORK
        assert outcome.message == "HTTP 404"

    @pytest.mark.asyncio
    async def test_failed_feed_url_reports_page_failure(self, checker, web):
        """A likely feed that cannot be fetched falls through to the page fetch error."""
        web.add(FEED_URL, "down", status=503)

        outcome = await checker.check(FEED_URL, None)

        assert outcome.error_kind == ErrorKind.NETWORK
        assert outcome.message == "HTTP 503"
        assert web.requested_urls == [FEED_URL, FEED_URL]

    @pytest.mark.asyncio
    async def test_malformed_url(self, settings):
        """A URL without a scheme is a network error."""
        outcome = await ChangeChecker(settings=settings).check("not a url", None)

        assert outcome.error_kind == ErrorKind.NETWORK
        assert outcome.has_new_content is False

    def test_check_sync_outside_event_loop(self, settings):
        """The blocking wrapper runs its own loop and returns the same outcome shape."""
        outcome = check_sync("not a url", settings=settings)

        assert outcome.error_kind == ErrorKind.NETWORK
        assert outcome.has_new_content is False
        assert outcome.content_identity is None

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_parse_failure(self, settings, web):
        class Exploding(CheckStrategy):
            name = "exploding"

            async def attempt(self, ctx):
                raise RuntimeError("boom")

        checker = ChangeChecker(settings=settings, client=web.client(), strategies=[Exploding(settings)])

        outcome = await checker.check(BLOG_URL, None)

        assert outcome.error_kind == ErrorKind.PARSE_FAILURE
        assert outcome.message == "boom"


class TestSummaries:
    """Tests for when summaries are produced."""

    @pytest.mark.asyncio
    async def test_no_summary_without_new_content(self, checker, web):
        web.add(FEED_URL, rss("https://ex.com/p1"), content_type="application/rss+xml")

        outcome = await checker.check(FEED_URL, "https://ex.com/p1")

        assert outcome.has_new_content is False
        assert outcome.content_text == "T. D"
        assert outcome.summary is None

    @pytest.mark.asyncio
    async def test_always_summarize(self, checker, web):
        web.add(FEED_URL, rss("https://ex.com/p1"), content_type="application/rss+xml")

        outcome = await checker.check(FEED_URL, "https://ex.com/p1", always_summarize=True)

        assert outcome.has_new_content is False
        assert outcome.summary == PLACEHOLDER


class TestCheckFeed:
    """Tests for strict feed checks."""

    @pytest.mark.asyncio
    async def test_feed(self, checker, web):
        web.add(FEED_URL, rss("https://ex.com/p1"), content_type="application/rss+xml")

        outcome = await checker.check_feed(FEED_URL)

        assert outcome.content_identity == "https://ex.com/p1"

    @pytest.mark.asyncio
    async def test_http_error_has_no_fallback(self, checker, web):
        web.add(FEED_URL, "gone", status=410)

        outcome = await checker.check_feed(FEED_URL)

        assert outcome.error_kind == ErrorKind.NETWORK
        assert outcome.message == "HTTP 410"
        assert web.requested_urls == [FEED_URL]

    @pytest.mark.asyncio
    async def test_html_is_not_a_feed(self, checker, web):
        web.add(FEED_URL, BLOG_HTML)

        outcome = await checker.check_feed(FEED_URL)

        assert outcome.error_kind == ErrorKind.CONTENT_NOT_FOUND
        assert outcome.message == NO_FEED_MESSAGE


class TestCheckMany:
    """Tests for batch checks."""

    @pytest.mark.asyncio
    async def test_order_and_isolation(self, checker, web):
        """One failing source does not affect the others."""
        web.add(FEED_URL, rss("https://ex.com/p1"), content_type="application/rss+xml")
        web.refuse("https://down.example.com/blog")
        web.add(BLOG_URL, BLOG_HTML)

        outcomes = await checker.check_many([
            (FEED_URL, None),
            ("https://down.example.com/blog", None),
            (BLOG_URL, "https://ex.com/blog/2024/01/launch-day"),
        ])

        assert [o.status for o in outcomes] == [
            CheckStatus.NEW_UPDATE,
            CheckStatus.ERROR,
            CheckStatus.ERROR,
        ]
        assert outcomes[0].content_identity == "https://ex.com/p1"
        assert outcomes[1].error_kind == ErrorKind.NETWORK

    @pytest.mark.asyncio
    async def test_sequential(self, checker, web):
        web.add(FEED_URL, rss("https://ex.com/p1"), content_type="application/rss+xml")
        web.add(BLOG_URL, BLOG_HTML)

        outcomes = await checker.check_many([(BLOG_URL, None), (FEED_URL, None)], max_concurrent=1)

        assert [o.content_identity for o in outcomes] == [
            "https://ex.com/blog/2024/01/launch-day",
            "https://ex.com/p1",
        ]
        assert web.requested_urls == [BLOG_URL, FEED_URL]

    @pytest.mark.asyncio
    async def test_repeat_checks_agree(self, checker, web):
        """Checks hold no state: the same input gives the same outcome."""
        web.add(BLOG_URL, BLOG_HTML)

        first, second = await checker.check_many([(BLOG_URL, None), (BLOG_URL, None)])

        assert first == second

"""
Change checking for monitored sources.

ChangeChecker is the public entry point: it classifies a URL, runs the
strategy chain and normalizes every exit path into one FetchOutcome.
Nothing is raised to the caller and nothing is remembered between calls;
the previous content identity comes in as an argument.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional

import httpx

from .classifier import classify_url
from .config import Settings, get_settings
from .exceptions import FetchError
from .logging_conf import get_logger, source_context
from .models import ErrorKind, FetchOutcome
from .sources import CheckContext, CheckStrategy, FeedFetcher, default_strategies
from .sources.html import NOT_FOUND_MESSAGE
from .summarizer import summarize

logger = get_logger(__name__)

NO_FEED_MESSAGE = "No feed items found at this URL."


class ChangeChecker:
    """
    Checks sources for new content.

    Sources are independent: a batch may run concurrently, while the
    requests for one source always run one after another.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        strategies: Optional[list[CheckStrategy]] = None,
        max_concurrent: Optional[int] = None,
    ):
        """
        Initialize the checker.

        Args:
            settings: Defaults to the environment settings
            client: Shared HTTP client; one is opened per call when omitted
            strategies: Fallback chain; defaults to the standard order
            max_concurrent: Limit for check_many
        """
        self.settings = settings or get_settings()
        self._client = client
        self.strategies = (
            strategies if strategies is not None else default_strategies(self.settings)
        )
        self.feed_fetcher = FeedFetcher(self.settings)
        self.max_concurrent = max_concurrent or self.settings.max_concurrent_checks

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            headers={"User-Agent": self.settings.user_agent},
            follow_redirects=True,
        ) as client:
            yield client

    async def check(
        self,
        url: str,
        previous: Optional[str] = None,
        *,
        always_summarize: bool = False,
    ) -> FetchOutcome:
        """
        Check one source for new content.

        Args:
            url: Absolute http(s) URL of the source
            previous: content_identity returned by the last check, if any
            always_summarize: Summarize even when nothing new was found

        Returns:
            FetchOutcome; failures are reported through error_kind
        """
        async with self._client_scope() as client:
            return await self._check(client, url, previous, always_summarize)

    async def check_feed(
        self,
        url: str,
        previous: Optional[str] = None,
        *,
        always_summarize: bool = False,
    ) -> FetchOutcome:
        """Check a URL strictly as a feed, with no HTML fallback."""
        try:
            async with self._client_scope() as client:
                outcome = await self.feed_fetcher.fetch(client, url, previous, fallback=False)
        except Exception as e:
            logger.error("feed_check_failed", url=url, error=str(e))
            outcome = FetchOutcome.failure(ErrorKind.PARSE_FAILURE, str(e) or type(e).__name__)

        if outcome is None:
            outcome = FetchOutcome.failure(ErrorKind.CONTENT_NOT_FOUND, NO_FEED_MESSAGE)
        return self._finalize(outcome, always_summarize)

    async def check_many(
        self,
        sources: Iterable[tuple[str, Optional[str]]],
        max_concurrent: Optional[int] = None,
        always_summarize: bool = False,
    ) -> list[FetchOutcome]:
        """
        Check several sources, bounded by a semaphore.

        Args:
            sources: (url, previous identity) pairs
            max_concurrent: Overrides the checker's limit; 1 runs sequentially

        Returns:
            Outcomes in the same order as sources
        """
        pairs = list(sources)
        semaphore = asyncio.Semaphore(max_concurrent or self.max_concurrent)

        async with self._client_scope() as client:
            async def check_one(url: str, previous: Optional[str]) -> FetchOutcome:
                async with semaphore:
                    return await self._check(client, url, previous, always_summarize)

            outcomes = await asyncio.gather(
                *(check_one(url, previous) for url, previous in pairs)
            )

        logger.info(
            "batch_check_complete",
            total=len(pairs),
            new=sum(1 for o in outcomes if o.has_new_content),
            errors=sum(1 for o in outcomes if o.error_kind and o.error_kind.is_hard_error),
        )
        return list(outcomes)

    async def _check(
        self,
        client: httpx.AsyncClient,
        url: str,
        previous: Optional[str],
        always_summarize: bool,
    ) -> FetchOutcome:
        url_class = classify_url(url)
        ctx = CheckContext(url=url, previous=previous, url_class=url_class, client=client)

        with source_context(url, url_class.kind.value):
            logger.debug("check_started")
            try:
                outcome = await self._run_chain(ctx)
            except (FetchError, httpx.HTTPError, httpx.InvalidURL) as e:
                logger.error("check_failed", error=str(e))
                outcome = FetchOutcome.failure(ErrorKind.NETWORK, str(e) or type(e).__name__)
            except Exception as e:
                logger.error("check_failed", error=str(e), error_type=type(e).__name__)
                outcome = FetchOutcome.failure(ErrorKind.PARSE_FAILURE, str(e) or type(e).__name__)

            logger.debug("check_finished", status=outcome.status.value)

        return self._finalize(outcome, always_summarize)

    async def _run_chain(self, ctx: CheckContext) -> FetchOutcome:
        for strategy in self.strategies:
            if not strategy.applies_to(ctx):
                continue
            outcome = await strategy.attempt(ctx)
            if outcome is not None:
                logger.debug("strategy_handled", url=ctx.url, strategy=strategy.name)
                return outcome

        # Only reachable with a custom chain that has no final extractor
        return FetchOutcome(
            has_new_content=False,
            content_identity=ctx.url,
            error_kind=ErrorKind.CONTENT_NOT_FOUND,
            message=NOT_FOUND_MESSAGE,
        )

    def _finalize(self, outcome: FetchOutcome, always_summarize: bool) -> FetchOutcome:
        if outcome.has_new_content or always_summarize:
            return outcome.with_summary(summarize(outcome.content_text))
        return outcome


async def check(
    url: str,
    previous: Optional[str] = None,
    *,
    always_summarize: bool = False,
    settings: Optional[Settings] = None,
) -> FetchOutcome:
    """Convenience function to check a single source."""
    checker = ChangeChecker(settings=settings)
    return await checker.check(url, previous, always_summarize=always_summarize)


def check_sync(
    url: str,
    previous: Optional[str] = None,
    *,
    always_summarize: bool = False,
    settings: Optional[Settings] = None,
) -> FetchOutcome:
    """Synchronous wrapper for check."""
    return asyncio.run(
        check(url, previous, always_summarize=always_summarize, settings=settings)
    )

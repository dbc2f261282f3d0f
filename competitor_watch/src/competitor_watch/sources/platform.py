"""
Policy for social platforms that hide posts behind a login.

For these hosts only page metadata is read, and change detection is
reported as impossible rather than guessed.
"""

from typing import Optional

from bs4 import BeautifulSoup

from .base import CheckContext, CheckStrategy
from ..logging_conf import get_logger
from ..models import ErrorKind, FetchOutcome, Platform, UrlClass

logger = get_logger(__name__)


def limitation_message(platform: Platform) -> str:
    return (
        f"{platform.display_name} requires login to view posts. "
        "Only page description available."
    )


def page_metadata(soup: BeautifulSoup) -> Optional[str]:
    """Open Graph description if present, else the page title."""
    og_desc = soup.find("meta", attrs={"property": "og:description"})
    if og_desc is not None:
        content = (og_desc.get("content") or "").strip()
        if content:
            return content

    if soup.title is not None:
        title = soup.title.get_text(strip=True)
        if title:
            return title

    return None


def check_platform_limitation(
    url_class: UrlClass,
    url: str,
    soup: BeautifulSoup,
    max_chars: int = 500,
) -> Optional[FetchOutcome]:
    """
    Build the degraded outcome for a login-gated platform page.

    The identity is the page URL itself: the source was checked, but no
    post-level identity is available.

    Returns:
        FetchOutcome with PLATFORM_LIMITATION, or None for other sources
    """
    if not url_class.is_social or url_class.platform is None:
        return None

    text = page_metadata(soup)
    return FetchOutcome(
        has_new_content=False,
        content_identity=url,
        content_text=text[:max_chars] if text else None,
        error_kind=ErrorKind.PLATFORM_LIMITATION,
        message=limitation_message(url_class.platform),
    )


class PlatformPolicyStrategy(CheckStrategy):
    """Short-circuit social platform pages with metadata only."""

    name = "platform_policy"

    def applies_to(self, ctx: CheckContext) -> bool:
        return ctx.url_class.is_social and ctx.soup is not None

    async def attempt(self, ctx: CheckContext) -> Optional[FetchOutcome]:
        outcome = check_platform_limitation(
            ctx.url_class,
            ctx.url,
            ctx.soup,
            max_chars=self.settings.max_feed_text_chars,
        )
        if outcome is not None:
            logger.info("platform_limited", url=ctx.url, platform=ctx.url_class.platform.value)
        return outcome

"""
Base classes for check strategies.

A check runs an ordered list of strategies. Each one either handles the
source (returns a FetchOutcome) or passes (returns None) to the next.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from ..config import Settings
from ..exceptions import FetchError
from ..models import FetchOutcome, UrlClass


@dataclass
class CheckContext:
    """
    Per-check state handed from one strategy to the next.

    soup is filled in by the page fetch so later strategies work on the
    already stripped document without another request.
    """
    url: str
    previous: Optional[str]
    url_class: UrlClass
    client: httpx.AsyncClient
    soup: Optional[BeautifulSoup] = None


class CheckStrategy(ABC):
    """
    Abstract base class for one step of the fallback chain.
    """

    name: str = "strategy"

    def __init__(self, settings: Settings):
        self.settings = settings

    def applies_to(self, ctx: CheckContext) -> bool:
        """Whether this strategy should run for the source at all."""
        return True

    @abstractmethod
    async def attempt(self, ctx: CheckContext) -> Optional[FetchOutcome]:
        """
        Try to handle the source.

        Returns:
            A FetchOutcome when handled, None to pass to the next strategy
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


async def http_get(
    client: httpx.AsyncClient,
    url: str,
    *,
    accept: str,
    timeout: float,
    user_agent: str,
) -> httpx.Response:
    """
    GET a URL once with its own timeout.

    Raises:
        FetchError: on transport failure, timeout, malformed URL or non-2xx status
    """
    try:
        response = await client.get(
            url,
            headers={"User-Agent": user_agent, "Accept": accept},
            timeout=timeout,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise FetchError(str(e) or type(e).__name__) from e

    if not response.is_success:
        raise FetchError(f"HTTP {response.status_code}")

    return response

"""
Shared fixtures: settings without .env and a canned web served through
httpx.MockTransport, so no test touches the network.
"""

from typing import Optional

import httpx
import pytest

from competitor_watch.checker import ChangeChecker
from competitor_watch.config import Settings

REFUSED = object()


class FakeWeb:
    """Serves canned responses by URL and records every request."""

    def __init__(self):
        self.routes: dict = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        body: str = "",
        status: int = 200,
        content_type: str = "text/html; charset=utf-8",
    ) -> None:
        self.routes[url] = (status, body, content_type)

    def refuse(self, url: str) -> None:
        self.routes[url] = REFUSED

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url), REFUSED)
        if route is REFUSED:
            raise httpx.ConnectError("Connection refused", request=request)
        status, body, content_type = route
        return httpx.Response(
            status,
            content=body.encode("utf-8"),
            headers={"content-type": content_type},
        )

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            follow_redirects=True,
        )

    @property
    def requested_urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]

    def request_for(self, url: str) -> Optional[httpx.Request]:
        for request in self.requests:
            if str(request.url) == url:
                return request
        return None


def rss(link: str, title: str = "T", description: str = "D") -> str:
    """A one-item RSS document."""
    return (
        "<rss version=\"2.0\"><channel>"
        f"<item><link>{link}</link><title>{title}</title><description>{description}</description></item>"
        "</channel></rss>"
    )


@pytest.fixture
def settings():
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def web():
    return FakeWeb()


@pytest.fixture
def checker(settings, web):
    return ChangeChecker(settings=settings, client=web.client())

"""
URL classification done before any network call.
"""

from typing import Optional
from urllib.parse import urlparse

from .models import Platform, SourceKind, UrlClass


# Host fragments for platforms that need a login to list posts
SOCIAL_HOSTS = {
    "facebook.com": Platform.FACEBOOK,
    "fb.com": Platform.FACEBOOK,
    "linkedin.com": Platform.LINKEDIN,
}

# Hosted feed services
FEED_HOST_TOKENS = ("rss.app",)

FEED_PATH_FRAGMENTS = ("/feed", "/rss", "/atom", "feeds.")
FEED_SUFFIXES = (".xml", ".rss")


def _host(url: str) -> str:
    try:
        host = urlparse(url).netloc.lower()
    except ValueError:
        host = ""
    # Scheme-less or malformed input: match against the whole string
    return host or url.lower()


def detect_platform(url: str) -> Optional[Platform]:
    """Return the social platform hosting this URL, if any."""
    host = _host(url)
    for fragment, platform in SOCIAL_HOSTS.items():
        if fragment in host:
            return platform
    return None


def is_likely_feed(url: str) -> bool:
    """Check whether the URL string looks like an RSS/Atom feed."""
    lowered = url.lower()
    if any(token in lowered for token in FEED_HOST_TOKENS):
        return True
    if lowered.endswith(FEED_SUFFIXES):
        return True
    return any(fragment in lowered for fragment in FEED_PATH_FRAGMENTS)


def classify_url(url: str) -> UrlClass:
    """
    Classify a URL as a social platform, a likely feed or a generic page.

    Social hosts win over feed-looking paths.
    """
    platform = detect_platform(url)
    if platform:
        return UrlClass(kind=SourceKind.SOCIAL_PLATFORM, platform=platform)
    if is_likely_feed(url):
        return UrlClass(kind=SourceKind.LIKELY_FEED)
    return UrlClass(kind=SourceKind.GENERIC_PAGE)

class FetchError(Exception):
    """Raised when a URL cannot be retrieved (transport failure or non-2xx status)."""


class FeedParseError(Exception):
    """Raised when a body declared as XML cannot be parsed as a feed."""

"""
competitor_watch

Checks competitor blogs, news pages, feeds and social profiles for new
posts and summarizes what changed.

Example
-------
from competitor_watch import check

outcome = await check("https://example.com/blog", previous_identity)
if outcome.has_new_content:
    save(outcome.content_identity, outcome.summary)
"""

from .checker import ChangeChecker, check, check_sync
from .classifier import classify_url
from .models import ErrorKind, FetchOutcome
from .summarizer import summarize

__all__ = [
    "ChangeChecker",
    "ErrorKind",
    "FetchOutcome",
    "check",
    "check_sync",
    "classify_url",
    "summarize",
]

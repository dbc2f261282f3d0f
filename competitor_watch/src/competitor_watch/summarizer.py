"""
Extractive summaries for display next to a detected update.
"""

import re
from typing import Optional

PLACEHOLDER = "Update detected, but content could not be summarized."

MIN_TEXT_CHARS = 20
MIN_SENTENCE_CHARS = 20
MAX_SENTENCE_CHARS = 200
MAX_SUMMARY_CHARS = 200
MAX_SENTENCES = 2

_SENTENCE_END = re.compile(r"[.!?]+")
_WHITESPACE = re.compile(r"\s+")


def split_sentences(text: str) -> list[str]:
    """Collapse whitespace and split on runs of sentence-ending punctuation."""
    collapsed = _WHITESPACE.sub(" ", text)
    return [s.strip() for s in _SENTENCE_END.split(collapsed)]


def summarize(text: Optional[str]) -> str:
    """
    Build a short summary from the first usable sentences of text.

    Sentences must be longer than 20 and shorter than 200 characters; text
    with no terminal punctuation is one long sentence and is usually dropped.

    Returns:
        At most 200 characters, or the placeholder when nothing qualifies
    """
    if not text or len(text) < MIN_TEXT_CHARS:
        return PLACEHOLDER

    sentences = [
        s for s in split_sentences(text)
        if MIN_SENTENCE_CHARS < len(s) < MAX_SENTENCE_CHARS
    ]
    if not sentences:
        return PLACEHOLDER

    summary = ". ".join(sentences[:MAX_SENTENCES])
    if len(summary) > MAX_SUMMARY_CHARS:
        return summary[:MAX_SUMMARY_CHARS - 3] + "..."
    return summary + "."

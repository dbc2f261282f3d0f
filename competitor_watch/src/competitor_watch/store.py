"""
Caller-side persistence rules for check outcomes.

The checker never writes anything; this module decides which stored fields
an outcome may change.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from .models import CheckStatus, ErrorKind, FetchOutcome
from .summarizer import summarize


class SourceState(BaseModel):
    """Everything remembered about a monitored URL between checks."""

    url: str
    last_checked: Optional[datetime] = None
    last_update_url: Optional[str] = Field(None, description="Identity of the last detected item")
    last_update_date: Optional[datetime] = None
    last_content_text: Optional[str] = None
    last_summary: Optional[str] = None
    status: CheckStatus = CheckStatus.PENDING
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    @property
    def previous_content_identity(self) -> Optional[str]:
        return self.last_update_url


def apply_outcome(
    state: SourceState,
    outcome: FetchOutcome,
    now: Optional[datetime] = None,
) -> SourceState:
    """
    Return the state after recording an outcome.

    - New content: identity, text, summary and update date are replaced.
    - No new content: identity and summary stay as they were.
    - Always: last_checked, status and the error fields are overwritten,
      so a recovered source clears its old error.
    """
    now = now or datetime.now(timezone.utc)

    update = {
        "last_checked": now,
        "status": outcome.status,
        "error_kind": outcome.error_kind,
        "error_message": outcome.message,
    }

    if outcome.has_new_content:
        update.update({
            "last_update_url": outcome.content_identity,
            "last_update_date": now,
            "last_content_text": outcome.content_text,
            "last_summary": outcome.summary or summarize(outcome.content_text),
        })

    return state.model_copy(update=update)


def display_summary(state: SourceState) -> Optional[str]:
    """Text shown for a source: the error message in place of a summary on failure."""
    if state.error_kind is not None and state.error_message:
        return state.error_message
    return state.last_summary

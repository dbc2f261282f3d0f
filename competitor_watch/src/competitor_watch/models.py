"""
Result types shared by every check strategy.

A check always ends in one FetchOutcome, whatever path produced it:
direct feed, inline XML, platform metadata, discovered feed or scraped HTML.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Why a check is degraded or failed."""
    NETWORK = "network"                          # Transport failure, non-2xx, timeout
    PLATFORM_LIMITATION = "platform_limitation"  # Login-gated social platform
    CONTENT_NOT_FOUND = "content_not_found"      # Page fetched, no post link found
    PARSE_FAILURE = "parse_failure"              # Declared XML that would not parse

    @property
    def is_hard_error(self) -> bool:
        """Platform limitation is informational; everything else is an error."""
        return self is not ErrorKind.PLATFORM_LIMITATION


class SourceKind(str, Enum):
    """How a URL is treated before any network call."""
    LIKELY_FEED = "likely_feed"
    SOCIAL_PLATFORM = "social_platform"
    GENERIC_PAGE = "generic_page"


class Platform(str, Enum):
    """Social platforms known to hide posts from unauthenticated fetchers."""
    FACEBOOK = "facebook"
    LINKEDIN = "linkedin"

    @property
    def display_name(self) -> str:
        return {"facebook": "Facebook", "linkedin": "LinkedIn"}[self.value]


class CheckStatus(str, Enum):
    """Dashboard-level status of a monitored source."""
    PENDING = "pending"
    NEW_UPDATE = "new_update"
    NO_UPDATES = "no_updates"
    LIMITED = "limited"
    ERROR = "error"


@dataclass(frozen=True)
class UrlClass:
    """Classification of a URL: its kind plus the platform for social sources."""
    kind: SourceKind
    platform: Optional[Platform] = None

    @property
    def is_feed(self) -> bool:
        return self.kind == SourceKind.LIKELY_FEED

    @property
    def is_social(self) -> bool:
        return self.kind == SourceKind.SOCIAL_PLATFORM

    @property
    def source_type(self) -> str:
        """Stored source type: facebook, linkedin or website."""
        if self.platform:
            return self.platform.value
        return "website"


@dataclass(frozen=True)
class FetchOutcome:
    """
    The normalized result of checking one source.

    content_identity is the URL of the newest item found and becomes the
    caller's next previous_content_identity. error_kind may be set alongside
    a best-effort identity (e.g. platform limitation).
    """
    has_new_content: bool = False
    content_identity: Optional[str] = None
    content_text: Optional[str] = None
    summary: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if self.has_new_content and not self.content_identity:
            raise ValueError("New content requires a content identity")

    @classmethod
    def failure(cls, error_kind: ErrorKind, message: str) -> "FetchOutcome":
        """An outcome that makes no content claims."""
        return cls(
            has_new_content=False,
            content_identity=None,
            content_text=None,
            error_kind=error_kind,
            message=message,
        )

    @property
    def status(self) -> CheckStatus:
        """Map the outcome to the status shown for the source."""
        if self.error_kind is not None:
            if self.error_kind.is_hard_error:
                return CheckStatus.ERROR
            return CheckStatus.LIMITED
        if self.has_new_content:
            return CheckStatus.NEW_UPDATE
        return CheckStatus.NO_UPDATES

    def with_summary(self, summary: Optional[str]) -> "FetchOutcome":
        return replace(self, summary=summary)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "has_new_content": self.has_new_content,
            "content_identity": self.content_identity,
            "content_text": self.content_text,
            "summary": self.summary,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message,
            "status": self.status.value,
        }

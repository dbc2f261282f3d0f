"""
Database models and operations using SQLAlchemy.

Stores competitors and their monitored URLs together with the state each
check leaves behind. Supports SQLite and any SQLAlchemy URL.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Iterable, Optional

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    func,
)
from sqlalchemy.orm import (
    declarative_base,
    sessionmaker,
    relationship,
    Session,
)

from .classifier import classify_url
from .config import get_settings
from .logging_conf import get_logger
from .models import CheckStatus, ErrorKind, FetchOutcome
from .store import SourceState, apply_outcome

logger = get_logger(__name__)
Base = declarative_base()

COMPETITOR_TYPES = ("competitor", "partner", "inspiration")


class Competitor(Base):
    """
    A tracked company.
    """
    __tablename__ = "competitors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default="competitor")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    urls = relationship("CompetitorUrl", back_populates="competitor", cascade="all, delete-orphan")


class CompetitorUrl(Base):
    """
    A monitored source and the state of its last check.
    """
    __tablename__ = "competitor_urls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    competitor_id = Column(Integer, ForeignKey("competitors.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String(2048), nullable=False)
    source_type = Column(String(20), nullable=False)  # facebook, linkedin, website

    last_checked = Column(DateTime(timezone=True), nullable=True)
    last_update_url = Column(String(2048), nullable=True)
    last_update_date = Column(DateTime(timezone=True), nullable=True)
    last_content_text = Column(Text, nullable=True)
    last_summary = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=CheckStatus.PENDING.value)
    error_kind = Column(String(30), nullable=True)
    error_message = Column(Text, nullable=True)

    competitor = relationship("Competitor", back_populates="urls")

    def to_state(self) -> SourceState:
        return SourceState(
            url=self.url,
            last_checked=self.last_checked,
            last_update_url=self.last_update_url,
            last_update_date=self.last_update_date,
            last_content_text=self.last_content_text,
            last_summary=self.last_summary,
            status=CheckStatus(self.status or CheckStatus.PENDING.value),
            error_kind=ErrorKind(self.error_kind) if self.error_kind else None,
            error_message=self.error_message,
        )

    def apply_state(self, state: SourceState) -> None:
        self.last_checked = state.last_checked
        self.last_update_url = state.last_update_url
        self.last_update_date = state.last_update_date
        self.last_content_text = state.last_content_text
        self.last_summary = state.last_summary
        self.status = state.status.value
        self.error_kind = state.error_kind.value if state.error_kind else None
        self.error_message = state.error_message


class Database:
    """Database connection and operation manager."""

    def __init__(self, url: Optional[str] = None):
        """
        Initialize database connection.

        Args:
            url: Database URL (defaults to settings)
        """
        self.url = url or get_settings().effective_database_url

        connect_args = {}
        if "sqlite" in self.url:
            connect_args["check_same_thread"] = False

        self.engine = create_engine(
            self.url,
            connect_args=connect_args,
            echo=False,
        )

        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

        logger.info("database_initialized", url=self.url[:50])

    def create_tables(self) -> None:
        """Create all tables if they don't exist."""
        Base.metadata.create_all(self.engine)
        logger.info("database_tables_created")

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    # Competitors
    def add_competitor(
        self,
        session: Session,
        name: str,
        urls: Iterable[str],
        type: str = "competitor",
    ) -> Competitor:
        """
        Add a competitor with its URLs.

        The source type of each URL is derived from its host.
        """
        if not name:
            raise ValueError("Competitor name cannot be empty")
        if type not in COMPETITOR_TYPES:
            raise ValueError(f"Invalid type {type!r}, expected one of {', '.join(COMPETITOR_TYPES)}")

        url_list = [u.strip() for u in urls if u and u.strip()]
        if not url_list:
            raise ValueError("At least one URL is required")

        competitor = Competitor(name=name, type=type)
        for url in url_list:
            competitor.urls.append(CompetitorUrl(
                url=url,
                source_type=classify_url(url).source_type,
                status=CheckStatus.PENDING.value,
            ))
        session.add(competitor)
        session.flush()

        logger.info("competitor_added", name=name, urls=len(url_list))
        return competitor

    def get_urls(
        self,
        session: Session,
        url_id: Optional[int] = None,
    ) -> list[CompetitorUrl]:
        """Get one monitored URL by id, or all of them."""
        query = session.query(CompetitorUrl)
        if url_id is not None:
            query = query.filter(CompetitorUrl.id == url_id)
        return query.order_by(CompetitorUrl.competitor_id, CompetitorUrl.id).all()

    def delete_url(self, session: Session, url_id: int) -> bool:
        """Delete a monitored URL. Returns False if it did not exist."""
        row = session.get(CompetitorUrl, url_id)
        if row is None:
            return False
        session.delete(row)
        return True

    def record_outcome(
        self,
        session: Session,
        row: CompetitorUrl,
        outcome: FetchOutcome,
        now: Optional[datetime] = None,
    ) -> CompetitorUrl:
        """Persist a check outcome on a monitored URL."""
        row.apply_state(apply_outcome(row.to_state(), outcome, now))
        session.add(row)
        return row

    def get_stats(self, session: Session) -> dict:
        """Get database statistics."""
        by_status = dict(
            session.query(CompetitorUrl.status, func.count(CompetitorUrl.id))
            .group_by(CompetitorUrl.status)
            .all()
        )
        return {
            "total_competitors": session.query(func.count(Competitor.id)).scalar(),
            "total_urls": session.query(func.count(CompetitorUrl.id)).scalar(),
            "by_status": by_status,
        }


# Singleton instance
_db_instance: Optional[Database] = None


def get_database() -> Database:
    """Get or create database instance."""
    global _db_instance
    if _db_instance is None:
        _db_instance = Database()
        _db_instance.create_tables()
    return _db_instance


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager for database sessions."""
    db = get_database()
    session = db.get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

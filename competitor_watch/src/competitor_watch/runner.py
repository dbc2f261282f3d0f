"""
Refresh runs: check stored sources and record what each check found.

One failing source never stops the others; every URL ends the run with a
fresh last_checked and status.
"""

import uuid
from collections import defaultdict
from typing import Optional

from .checker import ChangeChecker
from .db import Database, get_database
from .logging_conf import bind_context, clear_context, get_logger
from .store import display_summary

logger = get_logger(__name__)


class RefreshRunner:
    """
    Checks monitored URLs and writes the outcomes back to the database.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        checker: Optional[ChangeChecker] = None,
    ):
        self.db = db or get_database()
        self.checker = checker or ChangeChecker()

    async def run(self, url_id: Optional[int] = None, concurrency: int = 1) -> dict:
        """
        Refresh one URL or all of them.

        Args:
            url_id: Only refresh this URL
            concurrency: Sources checked at once (1 = sequential)

        Returns:
            Run statistics with per-URL results
        """
        run_id = uuid.uuid4().hex[:8]
        bind_context(run_id=run_id)
        stats = defaultdict(int)
        results = []

        session = self.db.get_session()
        try:
            rows = self.db.get_urls(session, url_id)
            logger.info("refresh_started", urls=len(rows), concurrency=concurrency)

            outcomes = await self.checker.check_many(
                [(row.url, row.last_update_url) for row in rows],
                max_concurrent=concurrency,
            )

            for row, outcome in zip(rows, outcomes):
                self.db.record_outcome(session, row, outcome)
                stats["checked"] += 1
                stats[outcome.status.value] += 1
                results.append({
                    "id": row.id,
                    "url": row.url,
                    "status": row.status,
                    "has_new_content": outcome.has_new_content,
                    "error_kind": row.error_kind,
                    "summary": display_summary(row.to_state()),
                })

            session.commit()
        except Exception as e:
            session.rollback()
            logger.error("refresh_failed", error=str(e))
            raise
        finally:
            session.close()
            clear_context()

        logger.info(
            "refresh_complete",
            run_id=run_id,
            checked=stats["checked"],
            new_updates=stats["new_update"],
            errors=stats["error"],
        )

        return {
            "run_id": run_id,
            "checked": stats["checked"],
            "new_updates": stats["new_update"],
            "no_updates": stats["no_updates"],
            "limited": stats["limited"],
            "errors": stats["error"],
            "results": results,
        }


async def run_refresh(url_id: Optional[int] = None, concurrency: int = 1) -> dict:
    """Convenience function to refresh stored sources."""
    runner = RefreshRunner()
    return await runner.run(url_id=url_id, concurrency=concurrency)

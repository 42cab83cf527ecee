"""
Article lifecycle
Active articles are archived after the archive window and deleted once they pass the delete window.
Every transition is recorded in lifecycle_log.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.article import Article, ArticleStatus
from ..repositories.article_repository import ArticleRepository
from ..repositories.lifecycle_log_repository import LifecycleLogRepository
from .schedule import isoformat_z

logger = structlog.get_logger(__name__)


def _age_hours(created_at: datetime, now: datetime) -> str:
    return f"{(now - created_at).total_seconds() / 3600:.2f}"


class LifecycleService:

    def __init__(self, db: Session, archive_after_hours: float = 4, delete_after_hours: float = 8):
        self.db = db
        self.articles = ArticleRepository(db)
        self.logs = LifecycleLogRepository(db)
        self.archive_after = timedelta(hours=archive_after_hours)
        self.delete_after = timedelta(hours=delete_after_hours)

    def manage_article_lifecycle(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Archive then delete aged articles. Returns {"archived": n, "deleted": m}."""
        now = now or datetime.utcnow()

        try:
            archived = self._archive(now)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Lifecycle archive step failed", error=str(e))
            return {"error": str(e)}

        # Archive is committed; log it before the delete step can fail
        self._log_transitions("archived", archived, now)

        try:
            deleted = self._delete(now)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Lifecycle delete step failed", error=str(e), archived=len(archived))
            return {"error": str(e)}

        self._log_transitions("deleted", deleted, now)

        if archived or deleted:
            logger.info("Lifecycle sweep finished", archived=len(archived), deleted=len(deleted))

        return {"archived": len(archived), "deleted": len(deleted)}

    def _archive(self, now: datetime) -> List[Dict[str, Any]]:
        rows = self.articles.active_older_than(now - self.archive_after)
        snapshot = [{"id": a.id, "title": a.title, "created_at": a.created_at} for a in rows]
        for article in rows:
            article.status = ArticleStatus.ARCHIVED
        self.db.commit()
        return snapshot

    def _delete(self, now: datetime) -> List[Dict[str, Any]]:
        rows = self.articles.archived_older_than(now - self.delete_after)
        snapshot = [{"id": a.id, "title": a.title, "created_at": a.created_at} for a in rows]
        for article in rows:
            self.db.delete(article)
        self.db.commit()
        return snapshot

    def _log_transitions(self, action: str, articles: List[Dict[str, Any]], now: datetime) -> None:
        timestamp_key = "archived_at" if action == "archived" else "deleted_at"
        for article in articles:
            try:
                self.logs.add(
                    action=action,
                    article_id=article["id"],
                    article_title=article["title"],
                    details={
                        "created_at": isoformat_z(article["created_at"]),
                        timestamp_key: isoformat_z(now),
                        "age_hours": _age_hours(article["created_at"], now),
                    },
                )
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.warning("Failed to write lifecycle log", action=action, article_id=article["id"], error=str(e))

    def lifecycle_status(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()

        newest_active = self.articles.newest(ArticleStatus.ACTIVE)
        oldest_active = self.articles.oldest(ArticleStatus.ACTIVE)
        newest_archived = self.articles.newest(ArticleStatus.ARCHIVED)
        oldest_archived = self.articles.oldest(ArticleStatus.ARCHIVED)

        next_events = {}
        if oldest_active:
            archive_at = oldest_active.created_at + self.archive_after
            if archive_at > now:
                next_events["nextArchive"] = self._event(oldest_active, archive_at, now)
        if oldest_archived:
            delete_at = oldest_archived.created_at + self.delete_after
            if delete_at > now:
                next_events["nextDeletion"] = self._event(oldest_archived, delete_at, now)

        archive_hours = self.archive_after.total_seconds() / 3600
        delete_hours = self.delete_after.total_seconds() / 3600

        return {
            "currentTime": isoformat_z(now),
            "counts": {
                "active": self.articles.count(ArticleStatus.ACTIVE),
                "archived": self.articles.count(ArticleStatus.ARCHIVED),
            },
            "articles": {
                "newestActive": self._summary(newest_active),
                "oldestActive": self._summary(oldest_active),
                "newestArchived": self._summary(newest_archived),
                "oldestArchived": self._summary(oldest_archived),
            },
            "nextEvents": next_events,
            "recentActivity": [entry.to_dict() for entry in self.logs.recent(10)],
            "lifecycleRules": {
                "archive": f"Articles are archived {archive_hours:g} hours after creation",
                "delete": f"Archived articles are deleted {delete_hours:g} hours after creation",
                "sweepInterval": "Lifecycle checks run every 10 minutes",
            },
        }

    @staticmethod
    def _summary(article: Optional[Article]) -> Optional[Dict[str, Any]]:
        if article is None:
            return None
        return {"id": article.id, "title": article.title, "created_at": isoformat_z(article.created_at)}

    @staticmethod
    def _event(article: Article, at: datetime, now: datetime) -> Dict[str, Any]:
        return {
            "articleId": article.id,
            "articleTitle": article.title,
            "scheduledTime": isoformat_z(at),
            "timeRemainingSeconds": int((at - now).total_seconds()),
        }


def run_lifecycle_sweep(session_factory=None) -> Dict[str, Any]:
    """Background-job entry point with its own session."""
    from ..config import get_settings
    from ..core.database import job_session

    settings = get_settings()
    with job_session(session_factory) as db:
        service = LifecycleService(
            db,
            archive_after_hours=settings.lifecycle_archive_after_hours,
            delete_after_hours=settings.lifecycle_delete_after_hours,
        )
        return service.manage_article_lifecycle()

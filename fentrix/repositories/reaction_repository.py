from typing import Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import DatabaseError
from ..models.reaction import ArticleReaction


class ReactionRepository:
    def __init__(self, session: Session):
        self.session = session

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError:
            # Concurrent first write for the same article; callers re-read
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError("Failed to save reaction counts", details={"error": str(e)}) from e

    def get(self, article_id: str) -> Optional[ArticleReaction]:
        return self.session.query(ArticleReaction).filter(ArticleReaction.article_id == article_id).first()

    def create(self, article_id: str, counts: Optional[Dict[str, int]] = None) -> ArticleReaction:
        counts = counts or {}
        row = ArticleReaction(
            article_id=article_id,
            helpful_count=max(0, int(counts.get("helpful", 0) or 0)),
            love_count=max(0, int(counts.get("love", 0) or 0)),
            insightful_count=max(0, int(counts.get("insightful", 0) or 0)),
            concerning_count=max(0, int(counts.get("concerning", 0) or 0)),
        )
        self.session.add(row)
        self._commit()
        self.session.refresh(row)
        return row

    def get_or_create(self, article_id: str) -> ArticleReaction:
        return self.get(article_id) or self.create(article_id)

    def adjust(self, article_id: str, reaction_type: str, add: bool) -> ArticleReaction:
        """Increment or decrement one counter, never below zero."""
        row = self.get(article_id)
        if row is None:
            return self.create(article_id, {reaction_type: 1 if add else 0})

        column = f"{reaction_type}_count"
        current = getattr(row, column) or 0
        setattr(row, column, current + 1 if add else max(0, current - 1))
        self._commit()
        self.session.refresh(row)
        return row

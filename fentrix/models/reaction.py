from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime

from ..core.database import Base

REACTION_TYPES = ("helpful", "love", "insightful", "concerning")


class ArticleReaction(Base):
    """Aggregate reaction counters, one row per article. No foreign key to articles."""
    __tablename__ = "article_reactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(String(36), nullable=False, unique=True, index=True)

    helpful_count = Column(Integer, nullable=False, default=0)
    love_count = Column(Integer, nullable=False, default=0)
    insightful_count = Column(Integer, nullable=False, default=0)
    concerning_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def counts(self) -> dict:
        return {reaction: getattr(self, f"{reaction}_count") or 0 for reaction in REACTION_TYPES}

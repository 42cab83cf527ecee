import uuid
from datetime import datetime

from sqlalchemy import Column, String, Text, DateTime, JSON, Index

from ..core.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class ArticleStatus:
    ACTIVE = "active"
    ARCHIVED = "archived"


class Article(Base):
    """
    Generated news article.
    Rows move active -> archived -> deleted as they age (see news.lifecycle).
    """
    __tablename__ = "articles"

    id = Column(String(36), primary_key=True, default=_uuid)

    title = Column(String(500), nullable=False)
    summary = Column(Text)
    body = Column(Text)
    cover_image_url = Column(String(1000))
    category = Column(String(100), nullable=False, default="custom")
    source_url = Column(String(1000))
    stocks_mentioned = Column(JSON)

    created_by = Column(String(100), default="autogen")
    fingerprint = Column(String(1000), index=True)
    status = Column(String(20), nullable=False, default=ArticleStatus.ACTIVE)

    # Naive UTC timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_articles_status_created_at", "status", "created_at"),
        Index("idx_articles_category", "category"),
    )

    def __repr__(self):
        return f"<Article(id={self.id}, title='{(self.title or '')[:50]}...', status='{self.status}')>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "body": self.body,
            "cover_image_url": self.cover_image_url,
            "category": self.category,
            "source_url": self.source_url,
            "stocks_mentioned": self.stocks_mentioned or [],
            "created_by": self.created_by,
            "status": self.status,
            "created_at": self.created_at.isoformat() + "Z" if self.created_at else None,
            "updated_at": self.updated_at.isoformat() + "Z" if self.updated_at else None,
        }

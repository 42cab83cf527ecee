from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import desc, asc
from sqlalchemy.orm import Session

from ..models.article import Article, ArticleStatus


class ArticleRepository:
    def __init__(self, session: Session):
        self.session = session

    def create(self, **fields) -> Article:
        article = Article(**fields)
        self.session.add(article)
        self.session.commit()
        self.session.refresh(article)
        return article

    def get(self, article_id: str) -> Optional[Article]:
        return self.session.query(Article).filter(Article.id == article_id).first()

    def count(self, status: Optional[str] = None) -> int:
        query = self.session.query(Article)
        if status:
            query = query.filter(Article.status == status)
        return query.count()

    def latest(self, limit: int = 5) -> List[Article]:
        return self.session.query(Article).order_by(desc(Article.created_at)).limit(limit).all()

    def recent_titles(self, limit: int) -> List[Tuple[str, str, str]]:
        """(id, title, category) of the newest articles regardless of status."""
        return (
            self.session.query(Article.id, Article.title, Article.category)
            .order_by(desc(Article.created_at))
            .limit(limit)
            .all()
        )

    def find_by_fingerprint(self, fingerprint: str) -> Optional[Article]:
        return self.session.query(Article).filter(Article.fingerprint == fingerprint).first()

    def list_by_status(
        self,
        status: str,
        category: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Article], int]:
        query = self.session.query(Article).filter(Article.status == status)
        if category:
            query = query.filter(Article.category == category)

        total = query.count()
        articles = query.order_by(desc(Article.created_at)).offset(offset).limit(limit).all()
        return articles, total

    def active_older_than(self, cutoff: datetime) -> List[Article]:
        return (
            self.session.query(Article)
            .filter(Article.status == ArticleStatus.ACTIVE, Article.created_at < cutoff)
            .all()
        )

    def archived_older_than(self, cutoff: datetime) -> List[Article]:
        return (
            self.session.query(Article)
            .filter(Article.status == ArticleStatus.ARCHIVED, Article.created_at < cutoff)
            .all()
        )

    def newest(self, status: str) -> Optional[Article]:
        return (
            self.session.query(Article)
            .filter(Article.status == status)
            .order_by(desc(Article.created_at))
            .first()
        )

    def oldest(self, status: str) -> Optional[Article]:
        return (
            self.session.query(Article)
            .filter(Article.status == status)
            .order_by(asc(Article.created_at))
            .first()
        )

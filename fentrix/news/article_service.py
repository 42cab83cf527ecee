"""
Article persistence with duplicate detection.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.article import ArticleStatus
from ..repositories.article_repository import ArticleRepository
from ..services.images import DEFAULT_COVER_IMAGE, ImageService
from .dedup import (
    clean_summary,
    clean_title,
    generate_fingerprint,
    has_overlapping_keywords,
    is_title_similar,
    is_word_overlap_duplicate,
    short_fingerprint,
)

logger = structlog.get_logger(__name__)

MIN_BODY_LENGTH = 500
RECENT_TITLES_FOR_SAVE = 200
RECENT_TITLES_FOR_BATCH = 50


@dataclass
class ArticleDraft:
    title: str
    summary: str
    body: str
    category: str
    cover_image_url: Optional[str] = None
    source_url: Optional[str] = None
    status: str = ArticleStatus.ACTIVE
    stocks_mentioned: List[str] = field(default_factory=list)


@dataclass
class SaveResult:
    success: bool
    article_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.article_id}
        return {"success": False, "error": self.error}


class ArticleService:

    def __init__(self, db: Session, image_service: ImageService):
        self.db = db
        self.articles = ArticleRepository(db)
        self.image_service = image_service

    async def save_article_with_validation(self, draft: ArticleDraft) -> SaveResult:
        """
        Clean, validate, dedupe and insert a generated article.

        Rejections are returned as SaveResult(success=False) rather than raised.
        """
        title = clean_title(draft.title)
        summary = clean_summary(draft.summary)
        body = draft.body or ""
        logger.info("Validating article", title=title[:80], category=draft.category)

        if not title or not summary or len(body) < MIN_BODY_LENGTH:
            logger.info("Article rejected: missing content or insufficient length", title=title[:80])
            return SaveResult(success=False, error="Article content requirements not met")

        fingerprint = generate_fingerprint(title, summary, draft.category)

        try:
            duplicate_reason = self._find_duplicate(title, draft.category, fingerprint)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error checking for duplicates", error=str(e))
            duplicate_reason = None

        if duplicate_reason:
            logger.info("Duplicate article detected", title=title[:80], reason=duplicate_reason)
            return SaveResult(success=False, error=f"Duplicate article detected ({duplicate_reason})")

        cover_image_url = await self._ensure_cover_image(draft.cover_image_url, title, draft.category)

        try:
            article = self.articles.create(
                title=title,
                summary=summary,
                body=body,
                cover_image_url=cover_image_url,
                category=draft.category,
                source_url=draft.source_url,
                stocks_mentioned=draft.stocks_mentioned or None,
                created_by="autogen",
                fingerprint=fingerprint,
                status=draft.status or ArticleStatus.ACTIVE,
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error saving article", title=title[:80], error=str(e))
            return SaveResult(success=False, error=str(e))

        logger.info("Saved article", article_id=article.id, title=title[:80])
        return SaveResult(success=True, article_id=article.id)

    def _find_duplicate(self, title: str, category: str, fingerprint: str) -> Optional[str]:
        existing = self.articles.find_by_fingerprint(fingerprint)
        if existing:
            logger.info("Exact fingerprint match", existing_id=existing.id)
            return "exact fingerprint match"

        new_title = title.lower()
        for article_id, existing_title, existing_category in self.articles.recent_titles(RECENT_TITLES_FOR_SAVE):
            existing_clean = clean_title(existing_title or "").lower()

            if is_title_similar(existing_clean, new_title):
                logger.info("Similar title found", existing_id=article_id)
                return "title similarity"

            if existing_category == category and has_overlapping_keywords(existing_clean, new_title):
                logger.info("Same category with overlapping topic", existing_id=article_id)
                return "category + topic similarity"

        return None

    async def _ensure_cover_image(self, url: Optional[str], title: str, category: str) -> str:
        try:
            if url and await self.image_service.is_valid_image_url(url):
                return url

            logger.info("Invalid cover image, picking a stock image", url=url)
            image = await self.image_service.find_stock_image(title, category)
            return image.get("imageUrl") or DEFAULT_COVER_IMAGE
        except Exception as e:
            logger.warning("Cover image validation failed, using default image", error=str(e))
            return DEFAULT_COVER_IMAGE

    def is_duplicate_article(self, title: str, category: str) -> bool:
        """Duplicate check used for batch sector articles. Errors allow the insert."""
        try:
            fingerprint = short_fingerprint(title, category)
            match = self.articles.find_by_fingerprint(fingerprint)
            if match:
                logger.info("Duplicate detected by fingerprint", title=title[:80], existing=match.title[:80])
                return True

            for _, existing_title, _ in self.articles.recent_titles(RECENT_TITLES_FOR_BATCH):
                if existing_title and is_word_overlap_duplicate(existing_title, title):
                    logger.info("Duplicate detected by title overlap", title=title[:80], existing=existing_title[:80])
                    return True

            return False
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Error checking for duplicate article", error=str(e))
            return False

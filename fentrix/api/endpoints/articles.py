import math
from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, Query

from ...core.database import database_backend
from ...exceptions import ValidationError
from ...models.article import ArticleStatus
from ...news.generator import ArticleGenerator
from ...news.lifecycle import LifecycleService
from ...news.schedule import UpdateState, isoformat_z, schedule_info, time_remaining
from ...news.text import determine_category, split_generated_article
from ...repositories.article_repository import ArticleRepository
from ...services.images import ImageService
from ...services.scraper import ArticleScraper
from ..dependencies import (
    get_article_generator,
    get_article_repository,
    get_images,
    get_lifecycle_service,
    get_scraper,
    get_update_state,
)
from ..schemas import GenerateArticleRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


def _latest_summary(article, include_author: bool = False) -> Dict[str, Any]:
    entry = {
        "id": article.id,
        "title": article.title,
        "category": article.category,
        "created_at": isoformat_z(article.created_at),
    }
    if include_author:
        entry["created_by"] = article.created_by
    return entry


def _article_page(
    articles: ArticleRepository,
    state: UpdateState,
    status: str,
    category: Optional[str],
    limit: int,
    page: int,
) -> Dict[str, Any]:
    rows, total = articles.list_by_status(status, category=category, limit=limit, offset=(page - 1) * limit)
    return {
        "articles": [article.to_dict() for article in rows],
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit) if limit else 0,
        },
        "timeframe": state.refresh_timeframe(),
        "nextUpdate": isoformat_z(state.next_update_time),
    }


@router.get("/article-count")
async def article_count(
    articles: ArticleRepository = Depends(get_article_repository),
    state: UpdateState = Depends(get_update_state),
):
    """Article total, latest five and the countdown to the next scheduled run"""
    now = datetime.utcnow()
    next_update = state.ensure_next_update(now)

    return {
        "articleCount": articles.count(),
        "latestArticles": [_latest_summary(article) for article in articles.latest(5)],
        "nextUpdateTime": isoformat_z(next_update),
        "timeRemaining": time_remaining(next_update, now),
        "currentTime": isoformat_z(now),
        "updateScheduleInfo": schedule_info(state.interval_hours),
    }


@router.get("/check-articles")
async def check_articles(articles: ArticleRepository = Depends(get_article_repository)):
    return {
        "articleCount": articles.count(),
        "latestArticles": [_latest_summary(article, include_author=True) for article in articles.latest(5)],
        "databaseInfo": {
            "backend": database_backend(),
            "connected": True,
            "timestamp": isoformat_z(datetime.utcnow()),
        },
    }


@router.get("/articles")
async def list_articles(
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(20, ge=1, le=100, description="Articles per page"),
    page: int = Query(1, ge=1, description="Page number"),
    articles: ArticleRepository = Depends(get_article_repository),
    state: UpdateState = Depends(get_update_state),
):
    """Active articles, newest first"""
    return _article_page(articles, state, ArticleStatus.ACTIVE, category, limit, page)


@router.get("/articles/archived")
async def list_archived_articles(
    category: Optional[str] = Query(None, description="Filter by category"),
    limit: int = Query(20, ge=1, le=100, description="Articles per page"),
    page: int = Query(1, ge=1, description="Page number"),
    articles: ArticleRepository = Depends(get_article_repository),
    state: UpdateState = Depends(get_update_state),
):
    return _article_page(articles, state, ArticleStatus.ARCHIVED, category, limit, page)


@router.get("/lifecycle-status")
async def lifecycle_status(lifecycle: LifecycleService = Depends(get_lifecycle_service)):
    return lifecycle.lifecycle_status()


@router.post("/generate-article")
async def generate_article(
    request: GenerateArticleRequest,
    scraper: ArticleScraper = Depends(get_scraper),
    generator: ArticleGenerator = Depends(get_article_generator),
    images: ImageService = Depends(get_images),
):
    """
    Scrape a URL and return an AI-written article preview.
    Nothing is stored.
    """
    logger.info("Generating article from URL", url=request.url)
    scraped = await scraper.scrape(request.url)

    category = determine_category(scraped.title + scraped.content)
    generated = await generator.generate_ai_content(scraped.title, scraped.content, category)
    title, summary, body = split_generated_article(generated)

    cover_image_url = await images.generate_cover_image(title, category)

    return {
        "title": title,
        "summary": summary,
        "body": body,
        "cover_image_url": cover_image_url,
        "category": category,
    }


@router.get("/generate-image")
async def generate_image(
    prompt: Optional[str] = Query(None, description="Text describing the image"),
    category: Optional[str] = Query(None, description="Article category"),
    images: ImageService = Depends(get_images),
):
    if not prompt:
        raise ValidationError("A prompt is required to generate an image", error_code="MISSING_PROMPT")

    return await images.find_stock_image(prompt, category)

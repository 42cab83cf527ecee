import logging
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from ..config import get_settings
from ..core.database import get_db
from ..exceptions import UnauthorizedError
from ..news.generator import ArticleGenerator
from ..news.lifecycle import LifecycleService
from ..news.pipeline import NewsPipeline, get_news_pipeline
from ..news.schedule import UpdateState, update_state
from ..repositories.announcement_repository import AnnouncementRepository
from ..repositories.article_repository import ArticleRepository
from ..repositories.reaction_repository import ReactionRepository
from ..services.images import ImageService, get_image_service
from ..services.llm_service import get_llm_service
from ..services.market import CoinGeckoClient, FinnhubClient, get_coingecko_client, get_finnhub_client
from ..services.news_feeds import CryptoPanicFeed, get_crypto_feed
from ..services.scraper import ArticleScraper

logger = logging.getLogger(__name__)


def get_article_repository(db: Session = Depends(get_db)) -> ArticleRepository:
    return ArticleRepository(db)


def get_reaction_repository(db: Session = Depends(get_db)) -> ReactionRepository:
    return ReactionRepository(db)


def get_announcement_repository(db: Session = Depends(get_db)) -> AnnouncementRepository:
    return AnnouncementRepository(db)


def get_lifecycle_service(db: Session = Depends(get_db)) -> LifecycleService:
    settings = get_settings()
    return LifecycleService(
        db,
        archive_after_hours=settings.lifecycle_archive_after_hours,
        delete_after_hours=settings.lifecycle_delete_after_hours,
    )


def get_update_state() -> UpdateState:
    return update_state


def get_pipeline() -> NewsPipeline:
    return get_news_pipeline()


def get_article_generator() -> ArticleGenerator:
    return ArticleGenerator(get_llm_service())


def get_images() -> ImageService:
    return get_image_service()


def get_scraper() -> ArticleScraper:
    return ArticleScraper()


def get_finnhub() -> FinnhubClient:
    return get_finnhub_client()


def get_coingecko() -> CoinGeckoClient:
    return get_coingecko_client()


def get_crypto_news_feed() -> CryptoPanicFeed:
    return get_crypto_feed()


def require_admin_key(request: Request, x_api_key: Optional[str] = Header(None)) -> None:
    if not x_api_key or x_api_key != get_settings().admin_api_key:
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Unauthorized admin request from {client}")
        raise UnauthorizedError("Unauthorized. Invalid or missing API key.")

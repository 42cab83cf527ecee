"""
News Pipeline
Batch run executed on the 4-hour schedule:
1. Archive/delete aged articles
2. Load stock data and write sector market stories
3. Rewrite items from third-party news feeds into long-form articles
"""

import random
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.database import job_session
from ..models.article import ArticleStatus
from ..repositories.article_repository import ArticleRepository
from ..repositories.stock_repository import StockRepository
from ..services.images import ImageService, placeholder_image
from ..services.news_feeds import FeedItem, NewsFeed
from .article_service import ArticleDraft, ArticleService
from .dedup import short_fingerprint
from .generator import ArticleGenerator, fallback_article_content
from .lifecycle import LifecycleService
from .schedule import UpdateState, isoformat_z
from .text import extract_summary_from_content, extract_title_from_content

logger = structlog.get_logger(__name__)

SECTORS = ["Technology", "Finance", "Healthcare", "Energy", "Consumer Goods"]
MAX_STOCKS_PER_ARTICLE = 3
RANDOM_STOCK_PROBABILITY = 0.2
MIN_SOURCE_CONTENT_LENGTH = 50

# Used when the stocks table is empty
FALLBACK_STOCKS: List[Dict[str, Any]] = [
    {"symbol": "AAPL", "name": "Apple Inc.", "sector": "Technology", "price": 180.95, "change": 1.2, "volume": 78400000, "marketCap": 2850000000000},
    {"symbol": "MSFT", "name": "Microsoft Corporation", "sector": "Technology", "price": 378.92, "change": 0.8, "volume": 25600000, "marketCap": 2820000000000},
    {"symbol": "AMZN", "name": "Amazon.com Inc.", "sector": "Consumer Goods", "price": 178.12, "change": -0.5, "volume": 30500000, "marketCap": 1850000000000},
    {"symbol": "GOOGL", "name": "Alphabet Inc.", "sector": "Technology", "price": 142.65, "change": 0.3, "volume": 18200000, "marketCap": 1790000000000},
    {"symbol": "META", "name": "Meta Platforms Inc.", "sector": "Technology", "price": 486.18, "change": 2.1, "volume": 15800000, "marketCap": 1240000000000},
    {"symbol": "TSLA", "name": "Tesla Inc.", "sector": "Consumer Goods", "price": 175.34, "change": -2.8, "volume": 125600000, "marketCap": 556000000000},
    {"symbol": "JNJ", "name": "Johnson & Johnson", "sector": "Healthcare", "price": 152.49, "change": 0.2, "volume": 6800000, "marketCap": 398000000000},
    {"symbol": "PFE", "name": "Pfizer Inc.", "sector": "Healthcare", "price": 28.15, "change": -0.5, "volume": 38400000, "marketCap": 159000000000},
    {"symbol": "JPM", "name": "JPMorgan Chase & Co.", "sector": "Finance", "price": 197.45, "change": 1.0, "volume": 9300000, "marketCap": 570000000000},
    {"symbol": "BAC", "name": "Bank of America Corp.", "sector": "Finance", "price": 39.20, "change": 0.8, "volume": 42600000, "marketCap": 310000000000},
    {"symbol": "XOM", "name": "Exxon Mobil Corporation", "sector": "Energy", "price": 116.24, "change": -0.3, "volume": 15700000, "marketCap": 462000000000},
    {"symbol": "CVX", "name": "Chevron Corporation", "sector": "Energy", "price": 154.66, "change": 0.5, "volume": 8200000, "marketCap": 291000000000},
]


def get_latest_stock_data(db: Session) -> List[Dict[str, Any]]:
    """Top 30 stocks by market cap from the stocks table, or the built-in list."""
    rows = StockRepository(db).top_by_market_cap(30)
    if not rows:
        logger.info("No stocks found in database, using fallback data")
        return [dict(stock) for stock in FALLBACK_STOCKS]

    logger.info("Retrieved stocks from database", count=len(rows))
    return [
        {
            "symbol": row.symbol,
            "name": row.name,
            "sector": row.sector or "Technology",
            "price": row.current_price or 0,
            "change": row.price_change_percent or 0,
            "volume": row.volume or 0,
            "marketCap": row.market_cap or 0,
        }
        for row in rows
    ]


class NewsPipeline:
    """Main service for scheduled news generation"""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        generator: ArticleGenerator,
        image_service: ImageService,
        feeds: List[NewsFeed],
        state: UpdateState,
        archive_after_hours: float = 4,
        delete_after_hours: float = 8,
        feed_articles_per_category: int = 2,
        rng: Optional[random.Random] = None,
    ):
        self.session_factory = session_factory
        self.generator = generator
        self.image_service = image_service
        self.feeds = feeds
        self.state = state
        self.archive_after_hours = archive_after_hours
        self.delete_after_hours = delete_after_hours
        self.feed_articles_per_category = feed_articles_per_category
        self.rng = rng or random.Random()

    async def process_news(self, force: bool = False) -> Dict[str, Any]:
        """
        Run one batch. Only one run at a time unless forced.

        Returns:
            Dict with success flag, articlesCreated, processingTime and nextUpdate
        """
        if self.state.is_processing and not force:
            logger.info("News processing already in progress, skipping run")
            return {"success": False, "error": "Already processing"}

        self.state.is_processing = True
        started = time.monotonic()
        logger.info("🚀 Starting news processing", force=force)

        try:
            self._run_lifecycle()

            with job_session(self.session_factory) as db:
                stocks = get_latest_stock_data(db)

            if not stocks:
                raise RuntimeError("Failed to retrieve stock data")

            created = await self._generate_sector_articles(stocks)
            created += await self._generate_feed_articles()

            self.state.last_update_time = datetime.utcnow()
            next_update = self.state.schedule_next()
            processing_time = round(time.monotonic() - started, 3)

            logger.info("✅ News processing finished", articles_created=created, processing_time=processing_time)
            return {
                "success": True,
                "articlesCreated": created,
                "processingTime": processing_time,
                "nextUpdate": isoformat_z(next_update),
            }
        except Exception as e:
            logger.error("❌ News processing failed", error=str(e), exc_info=True)
            return {"success": False, "error": str(e)}
        finally:
            self.state.is_processing = False

    def _run_lifecycle(self) -> Dict[str, Any]:
        with job_session(self.session_factory) as db:
            return LifecycleService(db, self.archive_after_hours, self.delete_after_hours).manage_article_lifecycle()

    def _pick_stocks(self, stocks: List[Dict[str, Any]], sector: str) -> List[Dict[str, Any]]:
        picked = [
            stock for stock in stocks
            if stock["sector"] == sector or self.rng.random() < RANDOM_STOCK_PROBABILITY
        ]
        return picked[:MAX_STOCKS_PER_ARTICLE]

    async def _generate_sector_articles(self, stocks: List[Dict[str, Any]]) -> int:
        created = 0

        for sector in SECTORS:
            articles_for_sector = self.rng.randint(2, 3)
            logger.info("📰 Generating sector articles", sector=sector, count=articles_for_sector)

            for _ in range(articles_for_sector):
                relevant = self._pick_stocks(stocks, sector)
                if not relevant:
                    continue

                try:
                    story = await self.generator.generate_news_content(relevant, sector)
                except Exception as e:
                    logger.error("Error generating sector article", sector=sector, error=str(e))
                    continue

                with job_session(self.session_factory) as db:
                    if ArticleService(db, self.image_service).is_duplicate_article(story.title, sector):
                        logger.info("Skipping duplicate sector article", title=story.title[:80])
                        continue

                    try:
                        ArticleRepository(db).create(
                            title=story.title,
                            summary=story.summary,
                            body=story.content,
                            category=sector,
                            stocks_mentioned=[stock["symbol"] for stock in relevant],
                            fingerprint=short_fingerprint(story.title, sector),
                            created_by="autogen",
                            status=ArticleStatus.ACTIVE,
                        )
                        created += 1
                    except SQLAlchemyError as e:
                        db.rollback()
                        logger.error("Error inserting sector article", sector=sector, error=str(e))

        return created

    async def _generate_feed_articles(self) -> int:
        created = 0

        for feed in self.feeds:
            try:
                items = await feed.fetch(limit=self.feed_articles_per_category)
            except Exception as e:
                logger.error("Feed fetch failed", feed=feed.name, error=str(e))
                continue

            for item in items[:self.feed_articles_per_category]:
                result = await self.process_article(item.title, item, feed.category)
                if result.get("success"):
                    created += 1

        return created

    async def process_article(self, title: str, item: FeedItem, category: str) -> Dict[str, Any]:
        """Rewrite one feed item with the LLM and save it."""
        try:
            content = item.text or ""
            if len(content) < MIN_SOURCE_CONTENT_LENGTH:
                logger.warning("Source content is short", title=title[:80], length=len(content))

            if category == "crypto" and item.currencies:
                currencies = ", ".join(c.get("title", "") for c in item.currencies)
                content = f"{content} Related to: {currencies}"

            try:
                ai_content = await self.generator.generate_ai_content(title, content, category)
            except Exception as e:
                logger.error("Error generating AI content, using source text", title=title[:80], error=str(e))
                ai_content = fallback_article_content(title, category, content)

            ai_title = extract_title_from_content(ai_content)
            ai_summary = extract_summary_from_content(ai_content)

            try:
                cover_image_url = await self.image_service.generate_cover_image(ai_title, category)
            except Exception as e:
                logger.error("Error generating cover image", error=str(e))
                cover_image_url = placeholder_image(category)

            draft = ArticleDraft(
                title=ai_title,
                summary=ai_summary,
                body=ai_content,
                category=category,
                cover_image_url=cover_image_url,
                source_url=item.url,
                status=ArticleStatus.ACTIVE,
            )

            with job_session(self.session_factory) as db:
                result = await ArticleService(db, self.image_service).save_article_with_validation(draft)

            if result.success:
                return {"success": True, "articleId": result.article_id}
            logger.info("Failed to save article", title=ai_title[:80], error=result.error)
            return {"success": False, "error": result.error}

        except Exception as e:
            logger.error("Error processing article", title=title[:80], error=str(e))
            return {"success": False, "error": str(e)}


_pipeline: Optional[NewsPipeline] = None


def get_news_pipeline() -> NewsPipeline:
    """Process-wide pipeline bound to the shared update state."""
    global _pipeline
    if _pipeline is None:
        from ..config import get_settings
        from ..core.database import SessionLocal
        from ..services.images import get_image_service
        from ..services.llm_service import get_llm_service
        from ..services.news_feeds import get_article_feeds
        from .schedule import update_state

        settings = get_settings()
        _pipeline = NewsPipeline(
            session_factory=SessionLocal,
            generator=ArticleGenerator(get_llm_service()),
            image_service=get_image_service(),
            feeds=get_article_feeds(),
            state=update_state,
            archive_after_hours=settings.lifecycle_archive_after_hours,
            delete_after_hours=settings.lifecycle_delete_after_hours,
            feed_articles_per_category=settings.feed_articles_per_category,
        )
    return _pipeline

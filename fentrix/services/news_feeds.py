"""
Third-party news feeds that seed article generation.
Every feed degrades to an empty list (or cached/synthetic data) instead of raising.
"""

import asyncio
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ..core.cache import ExpiringCache

logger = structlog.get_logger(__name__)


@dataclass
class FeedItem:
    """Standardized news item format for all feeds"""
    title: str
    url: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    source: Optional[str] = None
    published_at: Optional[str] = None
    currencies: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def text(self) -> str:
        return self.content or self.description or self.title


class NewsFeed(ABC):
    """Base adapter for news feeds"""

    def __init__(self, name: str, category: str):
        self.name = name
        self.category = category

    @abstractmethod
    async def fetch(self, limit: int = 5) -> List[FeedItem]:
        """Fetch items and return them in the standardized format"""


class NewsApiFeed(NewsFeed):
    BASE_URL = "https://newsapi.org/v2"
    TIMEOUT_SECONDS = 10

    def __init__(self, name: str, category: str, api_key: Optional[str], endpoint: str, params: Dict[str, Any]):
        super().__init__(name, category)
        self.api_key = api_key
        self.endpoint = endpoint
        self.params = params

    async def fetch(self, limit: int = 5) -> List[FeedItem]:
        if not self.api_key:
            logger.warning("NewsAPI key missing, skipping feed", feed=self.name)
            return []

        try:
            async with httpx.AsyncClient(timeout=self.TIMEOUT_SECONDS) as client:
                response = await client.get(
                    f"{self.BASE_URL}/{self.endpoint}",
                    params={**self.params, "apiKey": self.api_key},
                )
                response.raise_for_status()
                articles = response.json().get("articles") or []
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error fetching news feed", feed=self.name, error=str(e))
            return []

        return [
            FeedItem(
                title=article.get("title") or "",
                url=article.get("url"),
                description=article.get("description"),
                content=article.get("content"),
                source=(article.get("source") or {}).get("name"),
                published_at=article.get("publishedAt"),
            )
            for article in articles[:limit]
            if article.get("title")
        ]


def finance_feed(api_key: Optional[str]) -> NewsApiFeed:
    return NewsApiFeed("finance", "finance", api_key, "top-headlines", {"country": "us", "category": "business"})


def health_feed(api_key: Optional[str]) -> NewsApiFeed:
    return NewsApiFeed("health", "health", api_key, "top-headlines", {"country": "us", "category": "health"})


def stock_feed(api_key: Optional[str]) -> NewsApiFeed:
    return NewsApiFeed(
        "stock",
        "stock",
        api_key,
        "everything",
        {"q": "stock market OR NASDAQ OR NYSE OR dow jones", "sortBy": "publishedAt"},
    )


def synthetic_crypto_news(now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = now or datetime.utcnow()
    source = {"title": "Fentrix.AI", "domain": "fentrix.ai"}
    bitcoin = {"code": "BTC", "title": "Bitcoin", "slug": "bitcoin"}
    ethereum = {"code": "ETH", "title": "Ethereum", "slug": "ethereum"}
    return [
        {
            "title": "Bitcoin Price Analysis: BTC Holds Support Above $70,000",
            "url": "https://www.example.com/crypto-news/1",
            "source": source,
            "published_at": now.isoformat() + "Z",
            "currencies": [bitcoin],
        },
        {
            "title": "Ethereum Completes Major Network Upgrade",
            "url": "https://www.example.com/crypto-news/2",
            "source": source,
            "published_at": (now - timedelta(hours=1)).isoformat() + "Z",
            "currencies": [ethereum],
        },
        {
            "title": "Regulatory Clarity Brings Institutional Investors to Crypto Markets",
            "url": "https://www.example.com/crypto-news/3",
            "source": source,
            "published_at": (now - timedelta(hours=2)).isoformat() + "Z",
            "currencies": [bitcoin, ethereum],
        },
    ]


class CryptoPanicFeed(NewsFeed):
    """CryptoPanic posts with a 30 minute cache that stretches to an hour when rate limited."""

    URL = "https://cryptopanic.com/api/v1/posts/"
    TIMEOUT_SECONDS = 5
    RATE_LIMIT_EXTENSION_SECONDS = 60 * 60

    def __init__(
        self,
        auth_token: Optional[str],
        user_agent: str,
        cache_seconds: int = 1800,
        max_jitter_seconds: float = 1.0,
    ):
        super().__init__("crypto", "crypto")
        self.auth_token = auth_token
        self.user_agent = user_agent
        self.max_jitter_seconds = max_jitter_seconds
        self.cache = ExpiringCache(ttl_seconds=cache_seconds)

    async def fetch_posts(self) -> List[Dict[str, Any]]:
        """Raw CryptoPanic results, cached, stale or synthetic."""
        if self.cache.is_fresh():
            logger.info("Using cached crypto news", updated_at=str(self.cache.updated_at))
            return self.cache.data

        if self.max_jitter_seconds:
            await asyncio.sleep(random.random() * self.max_jitter_seconds)

        try:
            async with httpx.AsyncClient(timeout=self.TIMEOUT_SECONDS) as client:
                response = await client.get(
                    self.URL,
                    params={"auth_token": self.auth_token or "", "kind": "news", "public": "true", "limit": 10},
                    headers={"Accept": "application/json", "User-Agent": self.user_agent},
                )
                response.raise_for_status()
                results = response.json().get("results")

            if results is None:
                raise ValueError("Invalid response format from CryptoPanic API")

            news = results[:10]
            self.cache.store(news)
            return news

        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error fetching crypto news", error=str(e))

            if isinstance(e, httpx.HTTPStatusError) and e.response.status_code == 429 and self.cache.has_data:
                logger.warning("CryptoPanic rate limited, extending cache")
                self.cache.extend(self.RATE_LIMIT_EXTENSION_SECONDS)

            if self.cache.has_data:
                return self.cache.data

            logger.warning("No crypto news cache available, using synthetic items")
            return synthetic_crypto_news()

    async def fetch(self, limit: int = 5) -> List[FeedItem]:
        posts = await self.fetch_posts()
        return [
            FeedItem(
                title=post.get("title") or "",
                url=post.get("url"),
                description=post.get("description"),
                source=(post.get("source") or {}).get("title"),
                published_at=post.get("published_at"),
                currencies=post.get("currencies") or [],
            )
            for post in posts[:limit]
            if post.get("title")
        ]


_crypto_feed: Optional[CryptoPanicFeed] = None


def get_crypto_feed() -> CryptoPanicFeed:
    """Process-wide CryptoPanic feed so the cache is shared between routes and jobs."""
    global _crypto_feed
    if _crypto_feed is None:
        from ..config import get_settings

        settings = get_settings()
        _crypto_feed = CryptoPanicFeed(
            auth_token=settings.cryptopanic_key,
            user_agent=settings.http_user_agent,
            cache_seconds=settings.crypto_news_cache_seconds,
        )
    return _crypto_feed


def get_article_feeds() -> List[NewsFeed]:
    from ..config import get_settings

    settings = get_settings()
    return [
        finance_feed(settings.news_api_key),
        health_feed(settings.news_api_key),
        stock_feed(settings.news_api_key),
        get_crypto_feed(),
    ]

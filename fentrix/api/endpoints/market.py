from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, Query

from ...news.schedule import isoformat_z
from ...services.market import CoinGeckoClient, FinnhubClient
from ...services.news_feeds import CryptoPanicFeed
from ..dependencies import get_coingecko, get_crypto_news_feed, get_finnhub

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/stocks")
async def get_stocks(finnhub: FinnhubClient = Depends(get_finnhub)):
    """Latest quotes for the tracked stocks and crypto pairs"""
    return await finnhub.get_snapshot()


@router.get("/crypto")
async def get_crypto(coingecko: CoinGeckoClient = Depends(get_coingecko)):
    return await coingecko.get_markets()


@router.get("/crypto/chart/{coin_id}")
async def get_crypto_chart(
    coin_id: str,
    days: str = Query("7", description="Number of days of history"),
    interval: str = Query("daily", description="Data point interval"),
    coingecko: CoinGeckoClient = Depends(get_coingecko),
):
    return await coingecko.get_chart(coin_id, days=days, interval=interval)


@router.get("/crypto-news")
async def get_crypto_news(feed: CryptoPanicFeed = Depends(get_crypto_news_feed)):
    news = await feed.fetch_posts()
    return {
        "status": "success",
        "data": news,
        "count": len(news),
        "timestamp": isoformat_z(datetime.utcnow()),
    }

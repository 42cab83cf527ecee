"""
Market data clients: Finnhub quotes for the ticker strip and CoinGecko for crypto markets.
Both keep process-wide caches and serve stale data when the upstream API fails.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import httpx
import structlog

from ..core.cache import ExpiringCache
from ..exceptions import ExternalServiceError
from ..news.schedule import isoformat_z

logger = structlog.get_logger(__name__)

TRACKED_STOCKS = [
    "AAPL", "MSFT", "GOOGL", "TSLA", "NVDA", "META", "AMZN", "JPM", "V", "DIS",
    "NFLX", "AMD", "BA", "KO", "PEP", "WMT", "PYPL", "CRM", "IBM",
]
TRACKED_CRYPTO = [
    "BTCUSD", "ETHUSD", "XRPUSD", "SOLUSD", "DOGEUSD", "ADAUSD", "DOTUSD", "LTCUSD", "LINKUSD", "AVAXUSD",
]

COMPANY_NAMES = {
    "AAPL": "Apple Inc.",
    "MSFT": "Microsoft Corp.",
    "GOOGL": "Alphabet Inc.",
    "AMZN": "Amazon.com Inc.",
    "TSLA": "Tesla Inc.",
    "META": "Meta Platforms Inc.",
    "NVDA": "NVIDIA Corp.",
    "JPM": "JPMorgan Chase & Co.",
    "V": "Visa Inc.",
    "DIS": "The Walt Disney Company",
    "NFLX": "Netflix Inc.",
    "AMD": "Advanced Micro Devices, Inc.",
    "BA": "Boeing Co.",
    "KO": "Coca-Cola Co.",
    "PEP": "PepsiCo Inc.",
    "WMT": "Walmart Inc.",
    "PYPL": "PayPal Holdings Inc.",
    "CRM": "Salesforce Inc.",
    "IBM": "IBM Corp.",
    "BTCUSD": "Bitcoin",
    "ETHUSD": "Ethereum",
    "XRPUSD": "Ripple",
    "SOLUSD": "Solana",
    "DOGEUSD": "Dogecoin",
    "ADAUSD": "Cardano",
    "DOTUSD": "Polkadot",
    "LTCUSD": "Litecoin",
    "LINKUSD": "Chainlink",
    "AVAXUSD": "Avalanche",
}

# Shown only when nothing has ever been fetched
REFERENCE_QUOTES = {
    "AAPL": {"price": 174.23, "change": 0.95, "changePercent": 0.55},
    "MSFT": {"price": 429.32, "change": 2.16, "changePercent": 0.51},
    "BTCUSD": {"price": 63758.14, "change": -531.27, "changePercent": -0.83},
}

STOCKS_PER_REFRESH = 2


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def is_crypto_symbol(symbol: str) -> bool:
    return symbol in TRACKED_CRYPTO


def finnhub_symbol(symbol: str) -> str:
    """BTCUSD -> BINANCE:BTCUSDT; stocks pass through."""
    if is_crypto_symbol(symbol):
        return f"BINANCE:{symbol[:-3]}USDT"
    return symbol


def symbols_for_second(second: int) -> List[str]:
    """Two stocks rotated by the wall-clock second, plus BTC on even seconds."""
    start = int((second % (len(TRACKED_STOCKS) / STOCKS_PER_REFRESH)) * STOCKS_PER_REFRESH)
    selected = TRACKED_STOCKS[start:start + STOCKS_PER_REFRESH]
    if second % 2 == 0:
        selected = selected + ["BTCUSD"]
    return selected


class FinnhubClient:
    QUOTE_URL = "https://finnhub.io/api/v1/quote"
    TIMEOUT_SECONDS = 5
    CALL_DELAY_SECONDS = 0.3

    def __init__(
        self,
        api_key: Optional[str],
        user_agent: str,
        cache_seconds: int = 45,
        clock: Callable[[], datetime] = datetime.utcnow,
        call_delay: Optional[float] = None,
    ):
        self.api_key = api_key
        self.user_agent = user_agent
        self.cache = ExpiringCache(ttl_seconds=cache_seconds)
        self.clock = clock
        self.call_delay = self.CALL_DELAY_SECONDS if call_delay is None else call_delay

    async def fetch_quote(self, client: httpx.AsyncClient, symbol: str) -> Dict[str, Any]:
        response = await client.get(
            self.QUOTE_URL,
            params={"symbol": finnhub_symbol(symbol), "token": self.api_key or ""},
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
        )
        response.raise_for_status()
        quote = response.json()
        if not quote or not quote.get("c"):
            raise ValueError(f"Invalid response format for {symbol}")

        now = self.clock()
        current = quote["c"]
        entry = {
            "symbol": symbol,
            "price": _fmt(current),
            "high": _fmt(quote.get("h") or 0),
            "low": _fmt(quote.get("l") or 0),
            "company": COMPANY_NAMES.get(symbol, symbol),
            "lastUpdated": isoformat_z(now),
            "timestamp": isoformat_z(datetime.utcfromtimestamp(quote["t"])) if quote.get("t") else None,
            "source": "finnhub-real-time",
        }

        if is_crypto_symbol(symbol):
            previous = quote.get("pc") or current
            change = current - previous
            entry["change"] = _fmt(change)
            entry["changePercent"] = _fmt((change / previous) * 100 if previous else 0)
        else:
            entry["change"] = _fmt(quote.get("d") or 0)
            entry["changePercent"] = _fmt(quote.get("dp") or 0)
            entry["open"] = _fmt(quote.get("o") or 0)
            entry["prevClose"] = _fmt(quote.get("pc") or 0)
        return entry

    async def get_snapshot(self) -> Dict[str, Any]:
        now = self.clock()
        api_status = {"attempted": 0, "success": 0, "failed": 0, "errors": [], "fromCache": {}}

        if self.cache.is_fresh(now):
            api_status["fromCache"] = {
                "age": self.cache.age_seconds(now),
                "lastUpdated": isoformat_z(self.cache.updated_at),
                "expires": isoformat_z(self.cache.expires_at),
            }
            stocks = list(self.cache.data["stocks"])
        else:
            stocks = list(self.cache.data["stocks"]) if self.cache.has_data else []
            symbols = symbols_for_second(now.second)
            logger.info("Refreshing quotes", symbols=symbols)

            async with httpx.AsyncClient(timeout=self.TIMEOUT_SECONDS) as client:
                for index, symbol in enumerate(symbols):
                    api_status["attempted"] += 1
                    try:
                        entry = await self.fetch_quote(client, symbol)
                        stocks = [s for s in stocks if s["symbol"] != symbol] + [entry]
                        api_status["success"] += 1
                    except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
                        api_status["failed"] += 1
                        api_status["errors"].append(f"{symbol}: {e}")
                        logger.warning("Quote fetch failed", symbol=symbol, error=str(e))

                    if index < len(symbols) - 1 and self.call_delay:
                        await asyncio.sleep(self.call_delay)

            if not stocks:
                logger.warning("No quote data available, using reference values")
                stocks = [
                    {
                        "symbol": symbol,
                        "price": _fmt(values["price"]),
                        "change": _fmt(values["change"]),
                        "changePercent": _fmt(values["changePercent"]),
                        "company": COMPANY_NAMES.get(symbol, symbol),
                        "lastUpdated": isoformat_z(now),
                        "source": "reference-data-fallback",
                        "note": "Fallback data due to API issues",
                    }
                    for symbol, values in REFERENCE_QUOTES.items()
                ]

        stocks.sort(key=lambda s: s["symbol"])
        snapshot = {
            "stocks": stocks,
            "meta": {
                "source": "finnhub-real-time",
                "count": len(stocks),
                "timestamp": isoformat_z(now),
                "api_status": api_status,
                "rotation": now.second // 10,
                "next_update": isoformat_z(now + timedelta(seconds=15)),
            },
        }
        self.cache.store(snapshot, now)
        return snapshot


TRACKED_COINS = [
    "bitcoin", "ethereum", "ripple", "cardano", "solana",
    "polkadot", "dogecoin", "avalanche-2", "shiba-inu",
]


def map_coin(coin: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": coin.get("id"),
        "symbol": (coin.get("symbol") or "").upper(),
        "name": coin.get("name"),
        "price": coin.get("current_price"),
        "market_cap": coin.get("market_cap"),
        "market_cap_rank": coin.get("market_cap_rank"),
        "image": coin.get("image"),
        "high_24h": coin.get("high_24h"),
        "low_24h": coin.get("low_24h"),
        "price_change_24h": coin.get("price_change_24h"),
        "price_change_percentage_24h": coin.get("price_change_percentage_24h"),
        "price_change_percentage_7d": coin.get("price_change_percentage_7d_in_currency"),
        "total_volume": coin.get("total_volume"),
        "circulating_supply": coin.get("circulating_supply"),
        "last_updated": coin.get("last_updated"),
        "ath": coin.get("ath"),
        "ath_date": coin.get("ath_date"),
        "ath_change_percentage": coin.get("ath_change_percentage"),
    }


class CoinGeckoClient:
    TIMEOUT_SECONDS = 8
    STALE_EXTENSION_SECONDS = 300

    def __init__(self, base_url: str, user_agent: str, cache_seconds: int = 120):
        self.base_url = base_url.rstrip("/")
        self.headers = {"Accept": "application/json", "User-Agent": user_agent}
        self.markets_cache = ExpiringCache(ttl_seconds=cache_seconds)
        self.global_data: Dict[str, Any] = {}
        self.chart_caches: Dict[str, ExpiringCache] = {}

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, timeout: Optional[float] = None) -> Any:
        async with httpx.AsyncClient(timeout=timeout or self.TIMEOUT_SECONDS, headers=self.headers) as client:
            response = await client.get(f"{self.base_url}{path}", params=params)
            response.raise_for_status()
            return response.json()

    async def _refresh_global(self) -> None:
        try:
            payload = await self._get("/global", timeout=5)
            data = payload["data"]
            self.global_data = {
                "market_cap_usd": data["total_market_cap"]["usd"],
                "volume_24h_usd": data["total_volume"]["usd"],
                "bitcoin_dominance": data["market_cap_percentage"]["btc"],
                "ethereum_dominance": data["market_cap_percentage"]["eth"],
                "active_cryptocurrencies": data.get("active_cryptocurrencies"),
                "markets": data.get("markets"),
                "last_updated": isoformat_z(datetime.utcnow()),
            }
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.warning("Error fetching global crypto data", error=str(e))

    async def get_markets(self) -> Dict[str, Any]:
        now = datetime.utcnow()
        cached = self.markets_cache.is_fresh(now)

        if not cached:
            try:
                coins = await self._get(
                    "/coins/markets",
                    params={
                        "vs_currency": "usd",
                        "ids": ",".join(TRACKED_COINS),
                        "order": "market_cap_desc",
                        "per_page": 15,
                        "page": 1,
                        "sparkline": "false",
                        "price_change_percentage": "24h,7d",
                    },
                )
                if not isinstance(coins, list):
                    raise ValueError("Invalid response format from CoinGecko")

                await self._refresh_global()
                self.markets_cache.store([map_coin(coin) for coin in coins], now)
            except (httpx.HTTPError, ValueError) as e:
                logger.error("CoinGecko API error", error=str(e))
                if not self.markets_cache.has_data:
                    raise ExternalServiceError(
                        "No cached data available and CoinGecko API request failed",
                        details={"upstream_error": str(e)},
                    )
                self.markets_cache.extend(self.STALE_EXTENSION_SECONDS, now)

        data = self.markets_cache.data
        return {
            "data": data,
            "meta": {
                "count": len(data),
                "source": "coingecko",
                "timestamp": isoformat_z(now),
                "cached": cached,
                "next_update": isoformat_z(self.markets_cache.expires_at),
            },
            "global": self.global_data,
        }

    async def get_chart(self, coin_id: str, days: str = "7", interval: str = "daily") -> Dict[str, Any]:
        key = f"chart_{coin_id}_{days}_{interval}"
        cache = self.chart_caches.get(key)
        now = datetime.utcnow()

        if cache is not None and cache.is_fresh(now):
            return cache.data

        try:
            payload = await self._get(
                f"/coins/{coin_id}/market_chart",
                params={"vs_currency": "usd", "days": days, "interval": interval},
            )
            prices = payload["prices"]
            chart = {
                "labels": [isoformat_z(datetime.utcfromtimestamp(point[0] / 1000)) for point in prices],
                "prices": [point[1] for point in prices],
                "market_caps": [point[1] for point in payload.get("market_caps", [])],
                "total_volumes": [point[1] for point in payload.get("total_volumes", [])],
                "coin_id": coin_id,
                "days": days,
                "interval": interval,
            }
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.error("Error fetching chart data", coin_id=coin_id, error=str(e))
            if cache is not None and cache.has_data:
                return {**cache.data, "cached": True, "error": "Using cached data due to API error"}
            raise ExternalServiceError(f"Failed to fetch chart data for {coin_id}", details={"upstream_error": str(e)})

        # Only successful fetches get a cache entry
        if cache is None:
            cache = self.chart_caches[key] = ExpiringCache(ttl_seconds=1800)
        long_range = days.isdigit() and int(days) > 7
        cache.store(chart, now, ttl_seconds=3600 if long_range else 1800)
        return chart


_finnhub_client: Optional[FinnhubClient] = None
_coingecko_client: Optional[CoinGeckoClient] = None


def get_finnhub_client() -> FinnhubClient:
    global _finnhub_client
    if _finnhub_client is None:
        from ..config import get_settings

        settings = get_settings()
        _finnhub_client = FinnhubClient(
            api_key=settings.finnhub_api_key,
            user_agent=settings.http_user_agent,
            cache_seconds=settings.stock_cache_seconds,
        )
    return _finnhub_client


def get_coingecko_client() -> CoinGeckoClient:
    global _coingecko_client
    if _coingecko_client is None:
        from ..config import get_settings

        settings = get_settings()
        _coingecko_client = CoinGeckoClient(
            base_url=settings.coingecko_base_url,
            user_agent=settings.http_user_agent,
            cache_seconds=settings.crypto_cache_seconds,
        )
    return _coingecko_client

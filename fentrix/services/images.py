import asyncio
import random
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx
import structlog

from ..news.text import clean_image_title, extract_keywords

logger = structlog.get_logger(__name__)

DEFAULT_COVER_IMAGE = "https://images.pexels.com/photos/518543/pexels-photo-518543.jpeg?auto=compress&cs=tinysrgb&w=1200&h=628"

_PEXELS_SUFFIX = "?auto=compress&cs=tinysrgb&w=1200&h=628"


def _pexels(photo_id: str) -> str:
    return f"https://images.pexels.com/photos/{photo_id}/pexels-photo-{photo_id}.jpeg{_PEXELS_SUFFIX}"


CATEGORY_IMAGES: Dict[str, List[str]] = {
    "finance": [_pexels(i) for i in ("534216", "4386158", "210607", "730547", "6801648")],
    "crypto": [_pexels(i) for i in ("6780789", "8370752", "8919570", "844124", "7788009")],
    "health": [_pexels(i) for i in ("4386467", "4047186", "5473182", "3683074", "4386466")],
    "stock": [_pexels(i) for i in ("159888", "6801648", "8370764", "7567486", "186461")],
    "news": [_pexels(i) for i in ("518543", "5428836", "1369476", "3944454", "3957987")],
    "technology": [_pexels(i) for i in ("6963944", "1261427", "4348401", "2582937", "2582935")],
}

UNSPLASH_SOURCE_TOPICS = {
    "stock": "business",
    "finance": "business,economy",
    "crypto": "technology,cryptocurrency",
    "health": "health,medical",
}

REPLICATE_MODEL_VERSION = "db21e45d3f7023abc2a46ee38a23973f6dce16bb082a930b0c49861f96d1e5bf"


def placeholder_image(category: str) -> str:
    return f"https://placehold.co/1200x628/333/FFF?text=Fentrix.AI:+{(category or 'news').upper()}"


class ImageService:
    """Cover image lookup across free stock photo APIs with static fallbacks."""

    PEXELS_SEARCH_URL = "https://api.pexels.com/v1/search"
    REPLICATE_PREDICTIONS_URL = "https://api.replicate.com/v1/predictions"
    UNSPLASH_RANDOM_URL = "https://api.unsplash.com/photos/random"
    PIXABAY_URL = "https://pixabay.com/api/"
    TIMEOUT_SECONDS = 10
    VALIDATION_TIMEOUT_SECONDS = 3
    REPLICATE_MAX_POLLS = 30

    def __init__(
        self,
        pexels_api_key: Optional[str] = None,
        replicate_api_key: Optional[str] = None,
        unsplash_access_key: Optional[str] = None,
        pixabay_api_key: Optional[str] = None,
        rng: Optional[random.Random] = None,
        poll_interval: float = 1.0,
    ):
        self.pexels_api_key = pexels_api_key
        self.replicate_api_key = replicate_api_key
        self.unsplash_access_key = unsplash_access_key
        self.pixabay_api_key = pixabay_api_key
        self.rng = rng or random.Random()
        self.poll_interval = poll_interval

    async def generate_cover_image(self, title: str, category: str) -> str:
        """Pexels, then Replicate, then Unsplash API, then an Unsplash Source URL."""
        try:
            keywords = extract_keywords(clean_image_title(title), category, rng=self.rng)
            search_term = " ".join(keywords)
            logger.info("Searching cover image", title=title[:80], keywords=keywords)

            for provider in (self._search_pexels, self._generate_replicate, self._search_unsplash):
                try:
                    image_url = await provider(search_term)
                    if image_url:
                        return image_url
                except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
                    logger.warning("Cover image provider failed", provider=provider.__name__, error=str(e))

            return self.unsplash_source_url(category)
        except Exception as e:
            logger.error("Cover image generation failed", error=str(e))
            return placeholder_image(category)

    def unsplash_source_url(self, category: str) -> str:
        topic = UNSPLASH_SOURCE_TOPICS.get(category, "news")
        return f"https://source.unsplash.com/featured/1200x628/?{topic}&sig={self.rng.randint(0, 999)}"

    async def _search_pexels(self, search_term: str) -> Optional[str]:
        if not self.pexels_api_key:
            return None

        async with httpx.AsyncClient(timeout=self.TIMEOUT_SECONDS) as client:
            response = await client.get(
                self.PEXELS_SEARCH_URL,
                params={"query": search_term, "per_page": 1, "orientation": "landscape"},
                headers={"Authorization": self.pexels_api_key},
            )
            response.raise_for_status()
            photos = response.json().get("photos") or []

        if not photos:
            return None
        return self.rng.choice(photos)["src"]["large"]

    async def _generate_replicate(self, search_term: str) -> Optional[str]:
        if not self.replicate_api_key:
            return None

        headers = {
            "Authorization": f"Token {self.replicate_api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "version": REPLICATE_MODEL_VERSION,
            "input": {
                "prompt": f"news article cover image about: {search_term}",
                "negative_prompt": "text, watermark, logo, label",
            },
        }

        async with httpx.AsyncClient(timeout=self.TIMEOUT_SECONDS) as client:
            response = await client.post(self.REPLICATE_PREDICTIONS_URL, json=payload, headers=headers)
            response.raise_for_status()
            get_url = (response.json().get("urls") or {}).get("get")
            if not get_url:
                return None

            for _ in range(self.REPLICATE_MAX_POLLS):
                poll = await client.get(get_url, headers=headers)
                poll.raise_for_status()
                prediction = poll.json()
                if prediction.get("status") == "succeeded" and prediction.get("output"):
                    return prediction["output"][0]
                await asyncio.sleep(self.poll_interval)

        logger.warning("Replicate prediction did not finish in time", polls=self.REPLICATE_MAX_POLLS)
        return None

    async def _search_unsplash(self, search_term: str) -> Optional[str]:
        if not self.unsplash_access_key:
            return None

        async with httpx.AsyncClient(timeout=self.TIMEOUT_SECONDS) as client:
            response = await client.get(
                self.UNSPLASH_RANDOM_URL,
                params={"query": search_term, "orientation": "landscape"},
                headers={"Authorization": f"Client-ID {self.unsplash_access_key}"},
            )
            response.raise_for_status()
            urls = response.json().get("urls") or {}
        return urls.get("regular")

    async def find_stock_image(self, prompt: str, category: Optional[str] = None) -> Dict[str, Any]:
        """Pixabay search when a key is configured, else a random image from the category pool."""
        keywords = extract_keywords(prompt, category, rng=self.rng)

        if self.pixabay_api_key:
            try:
                async with httpx.AsyncClient(timeout=5) as client:
                    response = await client.get(
                        self.PIXABAY_URL,
                        params={
                            "key": self.pixabay_api_key,
                            "q": " ".join(keywords),
                            "image_type": "photo",
                            "orientation": "horizontal",
                            "min_width": 800,
                            "per_page": 3,
                        },
                    )
                    response.raise_for_status()
                    hits = response.json().get("hits") or []

                if hits:
                    selected = hits[self.rng.randrange(min(3, len(hits)))]
                    return {
                        "imageUrl": selected["webformatURL"],
                        "source": "pixabay",
                        "attribution": f"Image by {selected.get('user')} on Pixabay",
                        "tags": selected.get("tags"),
                    }
            except (httpx.HTTPError, KeyError, ValueError) as e:
                logger.warning("Pixabay search failed", error=str(e))

        used_category = category if category in CATEGORY_IMAGES else "news"
        return {
            "imageUrl": self.rng.choice(CATEGORY_IMAGES[used_category]),
            "source": "pexels",
            "category": used_category,
            "fallback": True,
        }

    async def is_valid_image_url(self, url: Optional[str]) -> bool:
        if not url:
            return False

        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return False

        if "placehold.co" in url:
            return True

        try:
            async with httpx.AsyncClient(timeout=self.VALIDATION_TIMEOUT_SECONDS, follow_redirects=True) as client:
                response = await client.head(url)
        except httpx.HTTPError as e:
            logger.info("Image URL unreachable", url=url, error=str(e))
            return False

        if response.status_code >= 400:
            return False
        content_type = response.headers.get("content-type", "")
        return content_type.startswith("image/")


def get_image_service() -> ImageService:
    from ..config import get_settings

    settings = get_settings()
    return ImageService(
        pexels_api_key=settings.pexels_api_key,
        replicate_api_key=settings.replicate_api_key,
        unsplash_access_key=settings.unsplash_access_key,
        pixabay_api_key=settings.pixabay_api_key,
    )

"""
Article scraper
Fetches a web page and pulls out its headline and article text
"""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
import structlog
from bs4 import BeautifulSoup

from ..exceptions import ScrapingError, ValidationError

logger = structlog.get_logger(__name__)

ARTICLE_SELECTORS = 'article, [role="article"], .article-content, .post-content'


@dataclass
class ScrapedArticle:
    url: str
    title: str
    content: str


class ArticleScraper:
    TIMEOUT_SECONDS = 15
    USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0 Safari/537.36"

    async def scrape(self, url: str) -> ScrapedArticle:
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError("Invalid URL", details={"url": url})

        try:
            async with httpx.AsyncClient(
                timeout=self.TIMEOUT_SECONDS,
                follow_redirects=True,
                headers={"User-Agent": self.USER_AGENT},
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.TimeoutException:
            raise ScrapingError("Request timed out", details={"url": url})
        except httpx.HTTPStatusError as e:
            raise ScrapingError(f"HTTP {e.response.status_code}", details={"url": url})
        except httpx.HTTPError as e:
            raise ScrapingError(f"Failed to fetch URL: {e}", details={"url": url})

        article = self.parse_html(url, response.text)
        logger.info("article_scraped", url=url, title=article.title[:80], content_length=len(article.content))
        return article

    @staticmethod
    def parse_html(url: str, html: str) -> ScrapedArticle:
        soup = BeautifulSoup(html, "html.parser")

        heading = soup.find("h1")
        title = heading.get_text(strip=True) if heading else ""
        if not title and soup.title and soup.title.string:
            title = soup.title.string.strip()

        text = " ".join(node.get_text(" ") for node in soup.select(ARTICLE_SELECTORS))
        content = re.sub(r"\s+", " ", text).strip()

        return ScrapedArticle(url=url, title=title, content=content)

import random
import pytest
from unittest.mock import patch, MagicMock, AsyncMock

import httpx

from fentrix.services.images import CATEGORY_IMAGES, ImageService, placeholder_image


def _json_response(payload):
    response = MagicMock()
    response.json = MagicMock(return_value=payload)
    response.raise_for_status = MagicMock()
    return response


def _head_response(status_code, content_type):
    response = MagicMock()
    response.status_code = status_code
    response.headers = {"content-type": content_type}
    return response


class TestIsValidImageUrl:
    @pytest.fixture(autouse=True)
    def setup_service(self):
        self.service = ImageService(rng=random.Random(0))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [None, "", "ftp://example.com/a.jpg", "not a url"])
    async def test_rejects_malformed_urls(self, url):
        assert await self.service.is_valid_image_url(url) is False

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_placeholder_is_always_valid(self, mock_client):
        assert await self.service.is_valid_image_url(placeholder_image("finance")) is True
        mock_client.assert_not_called()

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_image_content_type_is_valid(self, mock_client):
        mock_client.return_value.__aenter__.return_value.head = AsyncMock(
            return_value=_head_response(200, "image/jpeg")
        )

        assert await self.service.is_valid_image_url("https://images.example.com/a.jpg") is True

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code, content_type", [(404, "image/jpeg"), (200, "text/html")])
    async def test_bad_status_or_type_is_invalid(self, mock_client, status_code, content_type):
        mock_client.return_value.__aenter__.return_value.head = AsyncMock(
            return_value=_head_response(status_code, content_type)
        )

        assert await self.service.is_valid_image_url("https://images.example.com/a.jpg") is False

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_unreachable_is_invalid(self, mock_client):
        mock_client.return_value.__aenter__.return_value.head = AsyncMock(side_effect=httpx.ConnectError("down"))

        assert await self.service.is_valid_image_url("https://images.example.com/a.jpg") is False


class TestGenerateCoverImage:
    @pytest.mark.asyncio
    async def test_without_keys_uses_unsplash_source(self):
        service = ImageService(rng=random.Random(0))

        url = await service.generate_cover_image("Banks lift dividends", "finance")

        assert url.startswith("https://source.unsplash.com/featured/1200x628/?business,economy&sig=")

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_pexels_result(self, mock_client):
        get = AsyncMock(return_value=_json_response({"photos": [{"src": {"large": "https://pexels.example.com/1.jpg"}}]}))
        mock_client.return_value.__aenter__.return_value.get = get
        service = ImageService(pexels_api_key="key", rng=random.Random(0))

        url = await service.generate_cover_image("## **Banks lift dividends**", "finance")

        assert url == "https://pexels.example.com/1.jpg"
        assert get.call_args.kwargs["headers"] == {"Authorization": "key"}

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_provider_error_falls_through(self, mock_client):
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(side_effect=httpx.ConnectError("down"))
        service = ImageService(pexels_api_key="key", rng=random.Random(0))

        url = await service.generate_cover_image("Bitcoin slips", "crypto")

        assert url.startswith("https://source.unsplash.com/featured/1200x628/?technology,cryptocurrency")

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_replicate_polls_until_finished(self, mock_client):
        client = mock_client.return_value.__aenter__.return_value
        client.post = AsyncMock(return_value=_json_response({"urls": {"get": "https://replicate.example.com/p/1"}}))
        client.get = AsyncMock(side_effect=[
            _json_response({"status": "processing"}),
            _json_response({"status": "succeeded", "output": ["https://replicate.example.com/out.png"]}),
        ])
        service = ImageService(replicate_api_key="token", rng=random.Random(0), poll_interval=0)

        url = await service.generate_cover_image("Oil output rises", "stock")

        assert url == "https://replicate.example.com/out.png"
        assert client.get.await_count == 2


class TestFindStockImage:
    @pytest.mark.asyncio
    async def test_category_pool_without_key(self):
        service = ImageService(rng=random.Random(0))

        result = await service.find_stock_image("bitcoin chart", "crypto")

        assert result["imageUrl"] in CATEGORY_IMAGES["crypto"]
        assert result["fallback"] is True

    @pytest.mark.asyncio
    async def test_unknown_category_uses_news_pool(self):
        result = await ImageService(rng=random.Random(0)).find_stock_image("anything", "sports")

        assert result["category"] == "news"
        assert result["imageUrl"] in CATEGORY_IMAGES["news"]

    @patch('httpx.AsyncClient')
    @pytest.mark.asyncio
    async def test_pixabay_hit(self, mock_client):
        hits = [{"webformatURL": "https://pixabay.example.com/1.jpg", "user": "anna", "tags": "money"}]
        mock_client.return_value.__aenter__.return_value.get = AsyncMock(return_value=_json_response({"hits": hits}))
        service = ImageService(pixabay_api_key="key", rng=random.Random(0))

        result = await service.find_stock_image("coins on a desk", "finance")

        assert result["source"] == "pixabay"
        assert result["imageUrl"] == "https://pixabay.example.com/1.jpg"
        assert result["attribution"] == "Image by anna on Pixabay"


class TestPlaceholderImage:
    def test_carries_brand_and_category(self):
        url = placeholder_image("crypto")

        assert "Fentrix.AI" in url
        assert url.endswith("CRYPTO")
        assert "NovaNews" not in url

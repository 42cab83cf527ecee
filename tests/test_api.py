import pytest
from unittest.mock import patch, MagicMock, AsyncMock

from sqlalchemy.exc import OperationalError

from fentrix.api.dependencies import (
    get_article_generator,
    get_coingecko,
    get_crypto_news_feed,
    get_finnhub,
    get_images,
    get_pipeline,
    get_scraper,
)
from fentrix.main import app
from fentrix.models.article import ArticleStatus
from fentrix.services.scraper import ScrapedArticle

ADMIN_HEADERS = {"X-API-Key": "dev-admin-key"}


@pytest.mark.asyncio
async def test_root_and_meta(async_client):
    response = await async_client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Fentrix.AI News API is running"}

    response = await async_client.get("/meta.json")
    data = response.json()
    assert data["apiStatus"] == "online"
    assert "/api/articles" in data["endpoints"]


@pytest.mark.asyncio
async def test_health(async_client):
    response = await async_client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "healthy"
    assert data["timestamp"].endswith("Z")


class TestArticleEndpoints:
    @pytest.mark.asyncio
    async def test_list_articles_paginates_newest_first(self, async_client, make_article):
        for hours in range(3):
            make_article(title=f"Story {hours}", age_hours=hours)

        response = await async_client.get("/api/articles", params={"limit": 2, "page": 1})

        assert response.status_code == 200
        data = response.json()
        assert [article["title"] for article in data["articles"]] == ["Story 0", "Story 1"]
        assert data["pagination"] == {"total": 3, "page": 1, "limit": 2, "pages": 2}
        assert data["nextUpdate"].endswith("Z")
        assert data["timeframe"]

    @pytest.mark.asyncio
    async def test_list_articles_filters_category(self, async_client, make_article):
        make_article(title="Bitcoin climbs", category="crypto")
        make_article(title="Bonds slip", category="finance")

        response = await async_client.get("/api/articles", params={"category": "crypto"})

        titles = [article["title"] for article in response.json()["articles"]]
        assert titles == ["Bitcoin climbs"]

    @pytest.mark.asyncio
    async def test_list_articles_rejects_bad_limit(self, async_client):
        response = await async_client.get("/api/articles", params={"limit": 0})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_archived_articles(self, async_client, make_article):
        make_article(title="Still fresh")
        make_article(title="Older news", status=ArticleStatus.ARCHIVED, age_hours=5)

        response = await async_client.get("/api/articles/archived")

        data = response.json()
        assert [article["title"] for article in data["articles"]] == ["Older news"]
        assert data["articles"][0]["status"] == "archived"

    @pytest.mark.asyncio
    async def test_article_count(self, async_client, make_article, update_state):
        make_article(title="Only story")

        response = await async_client.get("/api/article-count")

        data = response.json()
        assert data["articleCount"] == 1
        assert data["latestArticles"][0]["title"] == "Only story"
        assert data["updateScheduleInfo"]["intervalHours"] == 4
        assert update_state.next_update_time is not None
        assert data["timeRemaining"]["totalSeconds"] <= 4 * 3600

    @pytest.mark.asyncio
    async def test_check_articles_reports_backend(self, async_client, make_article):
        make_article(title="Only story")

        data = (await async_client.get("/api/check-articles")).json()

        assert data["latestArticles"][0]["created_by"] == "autogen"
        assert data["databaseInfo"]["connected"] is True

    @pytest.mark.asyncio
    async def test_lifecycle_status(self, async_client, make_article):
        make_article(title="Fresh")

        data = (await async_client.get("/api/lifecycle-status")).json()

        assert data["counts"] == {"active": 1, "archived": 0}

    @pytest.mark.asyncio
    async def test_generate_image_requires_prompt(self, async_client):
        response = await async_client.get("/api/generate-image")

        assert response.status_code == 400
        assert response.json()["error_code"] == "MISSING_PROMPT"

    @pytest.mark.asyncio
    async def test_generate_image(self, async_client, mock_image_service):
        app.dependency_overrides[get_images] = lambda: mock_image_service

        response = await async_client.get("/api/generate-image", params={"prompt": "oil rig", "category": "energy"})

        assert response.json()["imageUrl"] == "https://images.example.com/stock.jpg"
        mock_image_service.find_stock_image.assert_awaited_once_with("oil rig", "energy")

    @pytest.mark.asyncio
    async def test_generate_article_preview(self, async_client, mock_image_service):
        scraper = MagicMock()
        scraper.scrape = AsyncMock(return_value=ScrapedArticle(
            url="https://example.com/btc",
            title="Bitcoin jumps",
            content="Bitcoin and other crypto assets rallied overnight.",
        ))
        generator = MagicMock()
        generator.generate_ai_content = AsyncMock(
            return_value="Title: Bitcoin extends rally\n\nSummary: Crypto gained overnight.\n\nThe rally continued."
        )
        app.dependency_overrides[get_scraper] = lambda: scraper
        app.dependency_overrides[get_article_generator] = lambda: generator
        app.dependency_overrides[get_images] = lambda: mock_image_service

        response = await async_client.post("/api/generate-article", json={"url": "https://example.com/btc"})

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Bitcoin extends rally"
        assert data["summary"] == "Crypto gained overnight."
        assert data["category"] == "crypto"
        assert data["cover_image_url"] == "https://images.example.com/cover.jpg"


class TestTimerEndpoints:
    @pytest.mark.asyncio
    async def test_timer(self, async_client, update_state):
        response = await async_client.get("/api/timer")

        assert response.headers["cache-control"] == "public, max-age=60"
        data = response.json()
        assert data["lastUpdateTime"] is None
        assert data["lastUpdateReadable"] == "Not yet updated"
        assert data["updateStatus"] == "waiting"
        assert data["currentTimeReadable"].endswith(("AM", "PM"))
        assert data["nextUpdateTime"].endswith("Z")

    @pytest.mark.asyncio
    async def test_timer_reports_processing(self, async_client, update_state):
        update_state.is_processing = True

        data = (await async_client.get("/api/timer")).json()

        assert data["isProcessingNews"] is True
        assert data["updateStatus"] == "in_progress"

    @pytest.mark.asyncio
    async def test_short_timer(self, async_client):
        data = (await async_client.get("/api/timer-short")).json()

        assert data["timer"]["duration"] == 300
        assert data["timer"]["status"] == "active"
        assert data["meta"]["serverTime"] == data["timer"]["start"]


class TestReactionEndpoints:
    @pytest.mark.asyncio
    async def test_first_read_creates_zero_counts(self, async_client):
        response = await async_client.get("/api/reactions/article-1")

        assert response.status_code == 200
        assert response.json() == {"helpful": 0, "love": 0, "insightful": 0, "concerning": 0}
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["etag"].startswith('W/"article-article-1-')

    @pytest.mark.asyncio
    async def test_add_and_remove_never_below_zero(self, async_client):
        response = await async_client.post("/api/reactions/article-1", json={"type": "love", "add": True})
        assert response.json()["love"] == 1

        await async_client.post("/api/reactions/article-1", json={"type": "love", "add": False})
        response = await async_client.post("/api/reactions/article-1", json={"type": "love", "add": False})

        assert response.json()["love"] == 0

    @pytest.mark.asyncio
    async def test_initialize_keeps_existing_counts(self, async_client):
        seeded = await async_client.post(
            "/api/reactions/article-2",
            json={"initialize": True, "counts": {"helpful": 3, "insightful": 1}},
        )
        assert seeded.json() == {"helpful": 3, "love": 0, "insightful": 1, "concerning": 0}

        again = await async_client.post(
            "/api/reactions/article-2",
            json={"initialize": True, "counts": {"helpful": 9}},
        )

        assert again.json()["helpful"] == 3

    @pytest.mark.asyncio
    async def test_invalid_type(self, async_client):
        response = await async_client.post("/api/reactions/article-1", json={"type": "angry", "add": True})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid reaction type"

    @pytest.mark.asyncio
    async def test_missing_type(self, async_client):
        response = await async_client.post("/api/reactions/article-1", json={"add": True})

        assert response.status_code == 400
        assert response.json()["error"] == "Reaction type is required"

    @pytest.mark.asyncio
    async def test_counter_write_failure_returns_500(self, async_client, test_db):
        await async_client.post("/api/reactions/article-3", json={"type": "helpful", "add": True})

        with patch.object(test_db, "commit", side_effect=OperationalError("UPDATE", {}, Exception("disk full"))):
            response = await async_client.post("/api/reactions/article-3", json={"type": "helpful", "add": True})

        assert response.status_code == 500
        assert response.json()["error_code"] == "DatabaseError"
        assert (await async_client.get("/api/reactions/article-3")).json()["helpful"] == 1

    @pytest.mark.asyncio
    async def test_page_view(self, async_client):
        response = await async_client.post("/api/page-view/article-1", json={"pageViewId": "pv-1"})

        assert response.json() == {"success": True, "message": "Page view recorded"}


class TestAnnouncementEndpoints:
    @pytest.mark.asyncio
    async def test_create_maps_critical_to_high(self, async_client):
        response = await async_client.post(
            "/api/announcements",
            json={"title": "Maintenance", "content": "Brief downtime tonight", "priority": "critical"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["priority"] == "high"
        assert data["is_active"] is True

    @pytest.mark.asyncio
    async def test_create_requires_title_and_content(self, async_client):
        response = await async_client.post("/api/announcements", json={"content": "No title"})

        assert response.status_code == 400
        assert response.json()["error"] == "Title and content are required"

    @pytest.mark.asyncio
    async def test_list_sorts_by_priority_and_hides_expired(self, async_client):
        await async_client.post("/api/announcements", json={"title": "Low", "content": "l", "priority": "low"})
        await async_client.post("/api/announcements", json={"title": "High", "content": "h", "priority": "high"})
        await async_client.post(
            "/api/announcements",
            json={"title": "Old", "content": "o", "priority": "high", "expires_at": "2000-01-01T00:00:00Z"},
        )
        await async_client.post("/api/announcements", json={"title": "Off", "content": "x", "is_active": False})

        response = await async_client.get("/api/announcements")

        assert [item["title"] for item in response.json()] == ["High", "Low"]

    @pytest.mark.asyncio
    async def test_update_and_delete(self, async_client):
        created = (await async_client.post(
            "/api/announcements", json={"title": "Draft", "content": "c", "priority": "low"}
        )).json()

        response = await async_client.put(
            f"/api/announcements/{created['id']}", json={"title": "Final", "priority": "bogus"}
        )
        assert response.json()["title"] == "Final"
        assert response.json()["priority"] == "low"

        response = await async_client.delete(f"/api/announcements/{created['id']}")
        assert response.status_code == 204
        assert (await async_client.get("/api/announcements")).json() == []

    @pytest.mark.asyncio
    async def test_update_missing_announcement(self, async_client):
        response = await async_client.put("/api/announcements/missing", json={"title": "x"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing_announcement(self, async_client):
        response = await async_client.delete("/api/announcements/missing")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_create_database_failure_returns_500(self, async_client, test_db):
        with patch.object(test_db, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            response = await async_client.post("/api/announcements", json={"title": "Outage", "content": "c"})

        assert response.status_code == 500
        data = response.json()
        assert data["error_code"] == "DatabaseError"
        assert data["error"] == "Failed to create announcement"
        assert (await async_client.get("/api/announcements")).json() == []


class TestAdminEndpoints:
    @pytest.fixture
    def mock_pipeline(self):
        pipeline = MagicMock()
        pipeline.process_news = AsyncMock(return_value={"success": True, "articlesCreated": 3})
        app.dependency_overrides[get_pipeline] = lambda: pipeline
        return pipeline

    @pytest.mark.asyncio
    async def test_missing_key_is_rejected(self, async_client, mock_pipeline):
        response = await async_client.post("/api/admin/force-news-generation")

        assert response.status_code == 401
        mock_pipeline.process_news.assert_not_called()

    @pytest.mark.asyncio
    async def test_wrong_key_is_rejected(self, async_client, mock_pipeline):
        response = await async_client.post("/api/admin/force-news-generation", headers={"X-API-Key": "nope"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_forces_generation(self, async_client, mock_pipeline, update_state):
        response = await async_client.post("/api/admin/force-news-generation", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Successfully processed news. Created 3 articles."
        assert data["nextScheduledUpdate"].endswith("Z")
        mock_pipeline.process_news.assert_awaited_once_with(force=True)

    @pytest.mark.asyncio
    async def test_reports_failure(self, async_client, mock_pipeline):
        mock_pipeline.process_news = AsyncMock(return_value={"success": False, "error": "Already processing"})

        data = (await async_client.post("/api/admin/force-news-generation", headers=ADMIN_HEADERS)).json()

        assert data["success"] is False
        assert data["message"] == "Failed to process news: Already processing"


class TestMarketEndpoints:
    @pytest.mark.asyncio
    async def test_stocks(self, async_client):
        finnhub = MagicMock()
        finnhub.get_snapshot = AsyncMock(return_value={"stocks": [{"symbol": "AAPL"}], "meta": {"count": 1}})
        app.dependency_overrides[get_finnhub] = lambda: finnhub

        data = (await async_client.get("/api/stocks")).json()

        assert data["stocks"][0]["symbol"] == "AAPL"

    @pytest.mark.asyncio
    async def test_crypto_chart_defaults(self, async_client):
        coingecko = MagicMock()
        coingecko.get_chart = AsyncMock(return_value={"prices": [1.0]})
        app.dependency_overrides[get_coingecko] = lambda: coingecko

        await async_client.get("/api/crypto/chart/bitcoin")

        coingecko.get_chart.assert_awaited_once_with("bitcoin", days="7", interval="daily")

    @pytest.mark.asyncio
    async def test_crypto_upstream_error_is_502(self, async_client):
        from fentrix.exceptions import ExternalServiceError

        coingecko = MagicMock()
        coingecko.get_markets = AsyncMock(side_effect=ExternalServiceError("Failed to fetch crypto data"))
        app.dependency_overrides[get_coingecko] = lambda: coingecko

        response = await async_client.get("/api/crypto")

        assert response.status_code == 502

    @pytest.mark.asyncio
    async def test_crypto_news(self, async_client):
        feed = MagicMock()
        feed.fetch_posts = AsyncMock(return_value=[{"title": "BTC up"}])
        app.dependency_overrides[get_crypto_news_feed] = lambda: feed

        data = (await async_client.get("/api/crypto-news")).json()

        assert data["status"] == "success"
        assert data["count"] == 1

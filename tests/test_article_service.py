import pytest
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import OperationalError

from fentrix.models.article import Article
from fentrix.news.article_service import ArticleDraft, ArticleService, SaveResult
from fentrix.news.dedup import generate_fingerprint, short_fingerprint
from fentrix.services.images import DEFAULT_COVER_IMAGE

LONG_BODY = "The central bank kept its benchmark rate unchanged this week. " * 12


def _draft(**overrides):
    fields = {
        "title": "# **Central Bank Keeps Rates Unchanged**",
        "summary": "Policymakers signalled patience on inflation.",
        "body": LONG_BODY,
        "category": "finance",
        "cover_image_url": "https://images.example.com/cover.jpg",
    }
    fields.update(overrides)
    return ArticleDraft(**fields)


class TestSaveArticleWithValidation:
    @pytest.mark.asyncio
    async def test_saves_clean_article(self, test_db, mock_image_service):
        service = ArticleService(test_db, mock_image_service)

        result = await service.save_article_with_validation(_draft())

        assert result.success
        article = test_db.query(Article).filter(Article.id == result.article_id).one()
        assert article.title == "Central Bank Keeps Rates Unchanged"
        assert article.created_by == "autogen"
        assert article.status == "active"
        assert article.fingerprint == generate_fingerprint(
            "Central Bank Keeps Rates Unchanged", "Policymakers signalled patience on inflation.", "finance"
        )

    @pytest.mark.asyncio
    async def test_rejects_short_body(self, test_db, mock_image_service):
        service = ArticleService(test_db, mock_image_service)

        result = await service.save_article_with_validation(_draft(body="Too short"))

        assert result == SaveResult(success=False, error="Article content requirements not met")
        assert test_db.query(Article).count() == 0

    @pytest.mark.asyncio
    async def test_rejects_missing_summary(self, test_db, mock_image_service):
        service = ArticleService(test_db, mock_image_service)

        result = await service.save_article_with_validation(_draft(summary="**"))

        assert not result.success

    @pytest.mark.asyncio
    async def test_rejects_exact_fingerprint_match(self, test_db, mock_image_service):
        service = ArticleService(test_db, mock_image_service)
        await service.save_article_with_validation(_draft())

        result = await service.save_article_with_validation(_draft())

        assert not result.success
        assert "exact fingerprint match" in result.error
        assert test_db.query(Article).count() == 1

    @pytest.mark.asyncio
    async def test_rejects_similar_title(self, test_db, mock_image_service, make_article):
        make_article(title="Central Bank Keeps Rates Unchanged Again", category="stock")
        service = ArticleService(test_db, mock_image_service)

        result = await service.save_article_with_validation(_draft())

        assert not result.success
        assert "title similarity" in result.error

    @pytest.mark.asyncio
    async def test_rejects_same_category_topic_overlap(self, test_db, mock_image_service, make_article):
        make_article(title="Why central policymakers stayed patient on inflation expectations", category="finance")
        service = ArticleService(test_db, mock_image_service)

        result = await service.save_article_with_validation(_draft(
            title="Inflation expectations leave central policymakers cautious",
        ))

        assert not result.success
        assert "category + topic similarity" in result.error

    @pytest.mark.asyncio
    async def test_replaces_invalid_cover_image(self, test_db, mock_image_service):
        mock_image_service.is_valid_image_url = AsyncMock(return_value=False)
        service = ArticleService(test_db, mock_image_service)

        result = await service.save_article_with_validation(_draft())

        article = test_db.query(Article).filter(Article.id == result.article_id).one()
        assert article.cover_image_url == "https://images.example.com/stock.jpg"
        mock_image_service.find_stock_image.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_image_errors_fall_back_to_default(self, test_db, mock_image_service):
        mock_image_service.is_valid_image_url = AsyncMock(side_effect=RuntimeError("network down"))
        service = ArticleService(test_db, mock_image_service)

        result = await service.save_article_with_validation(_draft())

        article = test_db.query(Article).filter(Article.id == result.article_id).one()
        assert article.cover_image_url == DEFAULT_COVER_IMAGE

    @pytest.mark.asyncio
    async def test_duplicate_check_errors_do_not_block_save(self, test_db, mock_image_service):
        service = ArticleService(test_db, mock_image_service)
        error = OperationalError("SELECT", {}, Exception("db unavailable"))

        with patch.object(service, "_find_duplicate", side_effect=error):
            result = await service.save_article_with_validation(_draft())

        assert result.success

    def test_save_result_to_dict(self):
        assert SaveResult(success=True, article_id="abc").to_dict() == {"success": True, "data": "abc"}
        assert SaveResult(success=False, error="nope").to_dict() == {"success": False, "error": "nope"}


class TestIsDuplicateArticle:
    def test_detects_short_fingerprint(self, test_db, mock_image_service, make_article):
        title = "Technology Sector Rises as Apple Leads"
        make_article(title="Something else entirely", fingerprint=short_fingerprint(title, "Technology"))

        assert ArticleService(test_db, mock_image_service).is_duplicate_article(title, "Technology")

    def test_detects_word_overlap(self, test_db, mock_image_service, make_article):
        make_article(title="Energy Sector Rises as Exxon Leads")

        service = ArticleService(test_db, mock_image_service)

        assert service.is_duplicate_article("Energy Sector Rises While Exxon Leads Gains", "Energy")
        assert not service.is_duplicate_article("Healthcare stocks slip on policy worries", "Healthcare")

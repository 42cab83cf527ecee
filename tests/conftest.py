import pytest
from datetime import datetime, timedelta
from unittest.mock import MagicMock, AsyncMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fentrix.core.database import Base
from fentrix.news.schedule import UpdateState


@pytest.fixture
def test_engine():
    # One shared in-memory connection so every session sees the same tables
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    from fentrix import models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def test_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def update_state():
    return UpdateState()


@pytest.fixture
def make_article(test_db):
    from fentrix.models.article import Article

    def _make(title="Markets rally on strong earnings", category="finance", status="active", age_hours=0.0, **fields):
        article = Article(
            title=title,
            summary=fields.pop("summary", "Stocks rose across the board."),
            body=fields.pop("body", "Body text " * 60),
            category=category,
            status=status,
            created_at=datetime.utcnow() - timedelta(hours=age_hours),
            **fields,
        )
        test_db.add(article)
        test_db.commit()
        test_db.refresh(article)
        return article

    return _make


@pytest.fixture
def mock_image_service():
    service = MagicMock()
    service.generate_cover_image = AsyncMock(return_value="https://images.example.com/cover.jpg")
    service.is_valid_image_url = AsyncMock(return_value=True)
    service.find_stock_image = AsyncMock(return_value={
        "imageUrl": "https://images.example.com/stock.jpg",
        "source": "pexels",
        "category": "finance",
        "fallback": True,
    })
    return service


@pytest.fixture
def mock_llm_service():
    service = MagicMock()
    service.is_configured = True
    service.generate_with_fallback = AsyncMock(return_value="Title: Sample\n\nSummary: Sample summary")
    service.parse_json_response = MagicMock(return_value={"title": "Sample", "content": "Sample content"})
    return service


@pytest.fixture
async def async_client(test_db, update_state):
    from httpx import AsyncClient, ASGITransport
    from fentrix.main import app
    from fentrix.core.database import get_db
    from fentrix.api.dependencies import get_update_state

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_update_state] = lambda: update_state

    # ASGITransport does not run the lifespan, so no background jobs start
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()

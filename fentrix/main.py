from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api.endpoints import health
from .api.router import api_router
from .config import get_settings
from .core.database import create_tables
from .core.logging import apply_logging_preferences, configure_logging
from .exceptions import FentrixError
from .news import scheduler as news_scheduler
from .news.pipeline import get_news_pipeline
from .news.schedule import update_state

settings = get_settings()

configure_logging(settings)

logger = structlog.get_logger(__name__)

PUBLIC_ENDPOINTS = [
    "/api/article-count",
    "/api/check-articles",
    "/api/articles",
    "/api/stocks",
    "/api/crypto",
    "/api/crypto-news",
    "/api/timer",
    "/api/lifecycle-status",
    "/api/announcements",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    apply_logging_preferences(settings)
    logger.info("Starting Fentrix.AI News API", version=__version__)

    missing = settings.missing_required_keys()
    if missing:
        logger.warning("Missing integration keys, related features will use fallbacks", missing=missing)

    try:
        create_tables()
        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    update_state.interval_hours = settings.update_interval_hours
    if settings.scheduler_enabled:
        news_scheduler.init_scheduler(settings, get_news_pipeline(), update_state)
        news_scheduler.start_scheduler()
    else:
        update_state.schedule_next()
        logger.info("Background jobs disabled")

    yield

    news_scheduler.shutdown_scheduler()
    logger.info("Shutting down Fentrix.AI News API")


def create_application() -> FastAPI:
    app = FastAPI(
        title="Fentrix.AI News",
        description="AI-generated financial news with market data, reactions and announcements",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.exception_handler(FentrixError)
    async def fentrix_exception_handler(request: Request, exc: FentrixError):
        if exc.status_code >= 500:
            logger.error("Request failed", path=request.url.path, error=exc.message, error_code=exc.error_code)
        else:
            logger.info("Request rejected", path=request.url.path, error=exc.message, status_code=exc.status_code)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, **exc.to_dict()},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(
            "Unhandled exception occurred",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            }
        )

    @app.get("/", tags=["meta"])
    async def root():
        return {"message": "Fentrix.AI News API is running"}

    @app.get("/meta.json", tags=["meta"])
    async def meta():
        return {
            "name": "Fentrix.AI News",
            "version": __version__,
            "apiStatus": "online",
            "endpoints": PUBLIC_ENDPOINTS,
        }

    # Health check at root
    app.include_router(health.router, tags=["health"])

    app.include_router(api_router, prefix="/api")

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fentrix.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level="info",
        access_log=False,
    )

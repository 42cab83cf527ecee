from datetime import datetime
from typing import Dict, Any

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ... import __version__
from ...config import get_settings
from ...core.database import get_db, ping
from ...news.schedule import update_state, isoformat_z

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    settings = get_settings()
    try:
        ping(db)
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": "unhealthy",
                "error": "Database connectivity failed",
                "timestamp": isoformat_z(datetime.utcnow()),
            },
        )

    return {
        "status": "healthy",
        "service": "Fentrix.AI News API",
        "version": __version__,
        "environment": "development" if settings.debug else "production",
        "database": "healthy",
        "isProcessingNews": update_state.is_processing,
        "timestamp": isoformat_z(datetime.utcnow()),
    }

import structlog
from fastapi import APIRouter, Depends

from ...news.pipeline import NewsPipeline
from ...news.schedule import UpdateState, isoformat_z
from ..dependencies import get_pipeline, get_update_state, require_admin_key

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post("/force-news-generation", dependencies=[Depends(require_admin_key)])
async def force_news_generation(
    pipeline: NewsPipeline = Depends(get_pipeline),
    state: UpdateState = Depends(get_update_state),
):
    """Run the news batch now, even if a scheduled run is in progress"""
    logger.info("Forced news generation requested")
    result = await pipeline.process_news(force=True)
    next_update = state.schedule_next()

    if result.get("success"):
        message = f"Successfully processed news. Created {result['articlesCreated']} articles."
    else:
        message = f"Failed to process news: {result.get('error')}"

    return {
        "success": bool(result.get("success")),
        "message": message,
        "nextScheduledUpdate": isoformat_z(next_update),
    }

import time
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy.exc import IntegrityError

from ...exceptions import ValidationError
from ...models.reaction import REACTION_TYPES
from ...repositories.reaction_repository import ReactionRepository
from ..dependencies import get_reaction_repository
from ..schemas import PageViewRequest, ReactionRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


def _no_cache(response: Response) -> None:
    response.headers["Cache-Control"] = "no-cache"


@router.get("/reactions/{article_id}")
async def get_reactions(
    article_id: str,
    response: Response,
    reactions: ReactionRepository = Depends(get_reaction_repository),
):
    """Reaction counts for an article. A zeroed row is created on first read."""
    _no_cache(response)
    response.headers["ETag"] = f'W/"article-{article_id}-{int(time.time() * 1000)}"'

    try:
        row = reactions.get_or_create(article_id)
    except IntegrityError:
        # Concurrent first read created the row
        row = reactions.get(article_id)

    return row.counts()


@router.post("/reactions/{article_id}")
async def update_reaction(
    article_id: str,
    request: ReactionRequest,
    response: Response,
    reactions: ReactionRepository = Depends(get_reaction_repository),
):
    _no_cache(response)

    if request.initialize and request.counts is not None:
        existing = reactions.get(article_id)
        if existing:
            return existing.counts()
        return reactions.create(article_id, request.counts).counts()

    if not request.type:
        raise ValidationError("Reaction type is required")
    if request.type not in REACTION_TYPES:
        raise ValidationError("Invalid reaction type", details={"type": request.type})

    row = reactions.adjust(article_id, request.type, request.add)
    logger.info("Reaction updated", article_id=article_id, type=request.type, add=request.add)
    return row.counts()


@router.post("/page-view/{article_id}")
async def record_page_view(article_id: str, request: Optional[PageViewRequest] = None):
    logger.debug("Page view", article_id=article_id, page_view_id=request.pageViewId if request else None)
    return {"success": True, "message": "Page view recorded"}

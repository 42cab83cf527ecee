from fastapi import APIRouter

from .endpoints import admin, announcements, articles, market, reactions, timer

api_router = APIRouter()

api_router.include_router(articles.router, tags=["articles"])
api_router.include_router(market.router, tags=["market"])
api_router.include_router(timer.router, tags=["timer"])
api_router.include_router(reactions.router, tags=["reactions"])
api_router.include_router(announcements.router, prefix="/announcements", tags=["announcements"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])

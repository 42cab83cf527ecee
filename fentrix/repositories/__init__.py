from .article_repository import ArticleRepository
from .reaction_repository import ReactionRepository
from .lifecycle_log_repository import LifecycleLogRepository
from .stock_repository import StockRepository
from .announcement_repository import AnnouncementRepository

__all__ = [
    "ArticleRepository",
    "ReactionRepository",
    "LifecycleLogRepository",
    "StockRepository",
    "AnnouncementRepository",
]

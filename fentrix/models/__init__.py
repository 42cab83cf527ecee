from .article import Article, ArticleStatus
from .reaction import ArticleReaction, REACTION_TYPES
from .lifecycle_log import LifecycleLog
from .stock import Stock
from .announcement import Announcement

__all__ = ["Article", "ArticleStatus", "ArticleReaction", "REACTION_TYPES", "LifecycleLog", "Stock", "Announcement"]

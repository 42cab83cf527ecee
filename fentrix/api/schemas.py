from datetime import datetime, timezone
from typing import Optional, Dict

from pydantic import BaseModel, Field, field_validator

ALLOWED_PRIORITIES = ("low", "medium", "high")


def normalize_priority(priority: Optional[str], default: Optional[str] = "medium") -> Optional[str]:
    """'critical' is stored as 'high'; anything unknown falls back to the default."""
    if priority == "critical":
        return "high"
    if priority in ALLOWED_PRIORITIES:
        return priority
    return default


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class GenerateArticleRequest(BaseModel):
    url: str = Field(..., min_length=1, description="Source article URL")


class ReactionRequest(BaseModel):
    type: Optional[str] = Field(None, description="helpful, love, insightful or concerning")
    add: bool = Field(False, description="True to add the reaction, false to remove it")
    initialize: bool = Field(False, description="Seed counts for an article with no reactions yet")
    counts: Optional[Dict[str, int]] = None


class PageViewRequest(BaseModel):
    pageViewId: Optional[str] = None


class AnnouncementCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    priority: Optional[str] = None
    is_active: bool = True
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def to_naive_utc(cls, value):
        return _naive_utc(value)


class AnnouncementUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    priority: Optional[str] = None
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def to_naive_utc(cls, value):
        return _naive_utc(value)

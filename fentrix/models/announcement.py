from datetime import datetime

from sqlalchemy import Column, String, Text, DateTime, Boolean

from ..core.database import Base

PRIORITY_ORDER = {"low": 1, "medium": 2, "high": 3, "critical": 4}


class Announcement(Base):
    __tablename__ = "announcements"

    id = Column(String(32), primary_key=True)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def priority_rank(self) -> int:
        return PRIORITY_ORDER.get(self.priority, 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "priority": self.priority,
            "is_active": self.is_active,
            "expires_at": self.expires_at.isoformat() + "Z" if self.expires_at else None,
            "created_at": self.created_at.isoformat() + "Z" if self.created_at else None,
            "updated_at": self.updated_at.isoformat() + "Z" if self.updated_at else None,
        }

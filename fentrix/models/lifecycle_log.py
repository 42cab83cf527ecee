from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, JSON

from ..core.database import Base


class LifecycleLog(Base):
    __tablename__ = "lifecycle_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    action = Column(String(20), nullable=False)  # archived | deleted
    article_id = Column(String(36), nullable=False, index=True)
    article_title = Column(String(500))
    details = Column(JSON)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "article_id": self.article_id,
            "article_title": self.article_title,
            "details": self.details or {},
            "timestamp": self.timestamp.isoformat() + "Z" if self.timestamp else None,
        }

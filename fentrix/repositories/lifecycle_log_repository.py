from typing import Any, Dict, List

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..models.lifecycle_log import LifecycleLog


class LifecycleLogRepository:
    def __init__(self, session: Session):
        self.session = session

    def add(self, action: str, article_id: str, article_title: str, details: Dict[str, Any]) -> LifecycleLog:
        entry = LifecycleLog(
            action=action,
            article_id=article_id,
            article_title=article_title,
            details=details,
        )
        self.session.add(entry)
        self.session.commit()
        return entry

    def recent(self, limit: int = 10) -> List[LifecycleLog]:
        return self.session.query(LifecycleLog).order_by(desc(LifecycleLog.timestamp), desc(LifecycleLog.id)).limit(limit).all()

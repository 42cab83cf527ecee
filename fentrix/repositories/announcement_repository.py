import secrets
from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import DatabaseError
from ..models.announcement import Announcement


class AnnouncementRepository:
    def __init__(self, session: Session):
        self.session = session

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise DatabaseError(f"Failed to {action} announcement", details={"error": str(e)}) from e

    def list_active(self, now: Optional[datetime] = None) -> List[Announcement]:
        now = now or datetime.utcnow()
        rows = (
            self.session.query(Announcement)
            .filter(Announcement.is_active.is_(True))
            .filter(or_(Announcement.expires_at.is_(None), Announcement.expires_at > now))
            .all()
        )
        return sorted(rows, key=lambda a: a.priority_rank, reverse=True)

    def get(self, announcement_id: str) -> Optional[Announcement]:
        return self.session.query(Announcement).filter(Announcement.id == announcement_id).first()

    def create(self, **fields) -> Announcement:
        announcement = Announcement(id=secrets.token_hex(6), **fields)
        self.session.add(announcement)
        self._commit("create")
        self.session.refresh(announcement)
        return announcement

    def update(self, announcement: Announcement, **fields) -> Announcement:
        for key, value in fields.items():
            setattr(announcement, key, value)
        self._commit("update")
        self.session.refresh(announcement)
        return announcement

    def delete(self, announcement: Announcement) -> None:
        self.session.delete(announcement)
        self._commit("delete")

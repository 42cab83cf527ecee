from fastapi import APIRouter, Depends, Response, status

from ...exceptions import NotFoundError, ValidationError
from ...repositories.announcement_repository import AnnouncementRepository
from ..dependencies import get_announcement_repository
from ..schemas import AnnouncementCreate, AnnouncementUpdate, normalize_priority

router = APIRouter()


@router.get("")
async def list_announcements(announcements: AnnouncementRepository = Depends(get_announcement_repository)):
    """Active, unexpired announcements, highest priority first"""
    return [announcement.to_dict() for announcement in announcements.list_active()]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_announcement(
    request: AnnouncementCreate,
    announcements: AnnouncementRepository = Depends(get_announcement_repository),
):
    if not request.title or not request.content:
        raise ValidationError("Title and content are required")

    announcement = announcements.create(
        title=request.title,
        content=request.content,
        priority=normalize_priority(request.priority),
        is_active=request.is_active,
        expires_at=request.expires_at,
    )
    return announcement.to_dict()


@router.put("/{announcement_id}")
async def update_announcement(
    announcement_id: str,
    request: AnnouncementUpdate,
    announcements: AnnouncementRepository = Depends(get_announcement_repository),
):
    announcement = announcements.get(announcement_id)
    if announcement is None:
        raise NotFoundError("Announcement not found", details={"id": announcement_id})

    fields = {}
    if request.title:
        fields["title"] = request.title
    if request.content:
        fields["content"] = request.content
    if request.priority:
        fields["priority"] = normalize_priority(request.priority, default=announcement.priority)
    if request.is_active is not None:
        fields["is_active"] = request.is_active
    if "expires_at" in request.model_fields_set:
        fields["expires_at"] = request.expires_at

    return announcements.update(announcement, **fields).to_dict()


@router.delete("/{announcement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_announcement(
    announcement_id: str,
    announcements: AnnouncementRepository = Depends(get_announcement_repository),
):
    announcement = announcements.get(announcement_id)
    if announcement is None:
        raise NotFoundError("Announcement not found", details={"id": announcement_id})

    announcements.delete(announcement)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

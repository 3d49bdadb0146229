from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from ticketdesk.database import get_db
from ticketdesk.errors import NotFoundError
from ticketdesk.models.event import EventStatus
from ticketdesk.models.user import User
from ticketdesk.schemas.event import EventPayload, EventUpdate, EventResponse, EventPage
from ticketdesk.services.auth import get_current_user, get_current_admin
from ticketdesk.services.events import EventService

router = APIRouter(prefix="/events", tags=["events"])


@router.get("", response_model=EventPage)
async def list_events(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    category: Optional[str] = None,
    search: Optional[str] = None,
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    # Only admins may look past published events.
    if not (user and user.is_admin):
        event_status = EventStatus.PUBLISHED

    events, total = EventService.list_events(
        db, page=page, per_page=limit, category=category, search=search, status=event_status
    )
    total_pages = (total + limit - 1) // limit

    return EventPage(
        events=[EventResponse.from_model(event) for event in events],
        pagination={"current": page, "pages": total_pages, "total": total}
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int,
    user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    event = EventService.get_event(db, event_id)
    if event.status != EventStatus.PUBLISHED and not (user and user.is_admin):
        raise NotFoundError("Event", event_id)
    return EventResponse.from_model(event)


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventPayload,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    event = EventService.create_event(db, admin, payload)
    return EventResponse.from_model(event)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: int,
    update: EventUpdate,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    event = EventService.update_event(db, event_id, update)
    return EventResponse.from_model(event)

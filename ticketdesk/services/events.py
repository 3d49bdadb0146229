import logging
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ticketdesk.errors import EditConflict, NotFoundError
from ticketdesk.models.event import Event, EventStatus
from ticketdesk.models.ticket import Ticket, TicketStatus
from ticketdesk.models.user import User
from ticketdesk.schemas.event import EventPayload, EventResponse, EventUpdate
from ticketdesk.services.capacity import CapacityValidator, whole_number

logger = logging.getLogger(__name__)


def _apply_payload(event: Event, payload: EventPayload) -> None:
    event.title = payload.title
    event.description = payload.description
    event.category = payload.category
    event.date = payload.date
    event.end_date = payload.end_date
    event.status = payload.status
    event.venue_name = payload.venue.name
    event.venue_address = payload.venue.address
    event.venue_city = payload.venue.city
    event.venue_state = payload.venue.state
    event.venue_country = payload.venue.country
    event.venue_capacity = payload.venue.capacity
    event.total_seats = payload.seating.total_seats
    event.available_seats = payload.seating.available_seats
    event.pricing_type = payload.pricing.type
    event.pricing_amount = payload.pricing.amount
    event.pricing_currency = payload.pricing.currency


def _without_nulls(patch: dict, clearable: frozenset = frozenset({"end_date"})) -> dict:
    """Drop explicit nulls from an edit; only the fields in ``clearable`` may be cleared."""
    cleaned = {}
    for key, value in patch.items():
        if isinstance(value, dict):
            cleaned[key] = _without_nulls(value, frozenset())
        elif value is not None or key in clearable:
            cleaned[key] = value
    return cleaned


def _merge(current: dict, patch: dict) -> dict:
    merged = dict(current)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class EventService:
    @staticmethod
    def get_event(db: Session, event_id: int) -> Event:
        event = db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise NotFoundError("Event", event_id)
        return event

    @staticmethod
    def list_events(
        db: Session,
        page: int = 1,
        per_page: int = 12,
        category: Optional[str] = None,
        search: Optional[str] = None,
        status: Optional[EventStatus] = EventStatus.PUBLISHED
    ) -> tuple[list[Event], int]:
        query = db.query(Event)

        if status is not None:
            query = query.filter(Event.status == status)
        if category:
            query = query.filter(Event.category == category)
        if search:
            query = query.filter(or_(
                Event.title.ilike(f"%{search}%"),
                Event.description.ilike(f"%{search}%"),
                Event.venue_name.ilike(f"%{search}%"),
                Event.venue_city.ilike(f"%{search}%")
            ))

        total = query.count()
        events = query.order_by(Event.date.asc()).offset((page - 1) * per_page).limit(per_page).all()
        return events, total

    @staticmethod
    def create_event(db: Session, organizer: User, payload: EventPayload) -> Event:
        """Validate and persist a new event. Raises EventValidationError on any rule violation."""
        normalized = CapacityValidator.validate(payload, require_future=True).raise_for_violations()

        event = Event(organizer_id=organizer.id)
        _apply_payload(event, normalized)
        db.add(event)
        db.commit()
        db.refresh(event)
        logger.info(f"Event {event.id} created by user {organizer.id}")
        return event

    @staticmethod
    def to_payload(event: Event) -> EventPayload:
        return EventPayload.model_validate(
            EventResponse.from_model(event).model_dump(exclude={"id", "organizer_id", "bookings", "revenue"})
        )

    @staticmethod
    def update_event(db: Session, event_id: int, update: EventUpdate) -> Event:
        """
        Merge a partial update onto the stored event and re-run every rule on the result.

        Seats held by booked or used tickets stay taken: the total seat count may
        not drop below them, changing it without naming an availability keeps the
        sold count constant, and availability is never raised above
        ``totalSeats - sold``. A null leaves the stored value unchanged, except
        for ``endDate``, which it clears.
        """
        event = EventService.get_event(db, event_id)
        sold = db.query(Ticket).filter(
            Ticket.event_id == event.id,
            Ticket.status.in_([TicketStatus.BOOKED, TicketStatus.USED])
        ).count()

        patch = _without_nulls(update.model_dump(exclude_unset=True))
        seating_patch = patch.get("seating") or {}
        new_total = whole_number(seating_patch.get("total_seats"), 1)
        if new_total is not None and "available_seats" not in seating_patch:
            seating_patch["available_seats"] = max(new_total - sold, 0)
            patch["seating"] = seating_patch

        current = EventService.to_payload(event)
        candidate = EventPayload.model_validate(_merge(current.model_dump(), patch))

        date_changed = "date" in patch and candidate.date != event.date
        normalized = CapacityValidator.validate(
            candidate, require_future=date_changed, sold=sold
        ).raise_for_violations()

        ceiling = normalized.seating.total_seats - sold
        if normalized.seating.available_seats > ceiling:
            normalized = normalized.model_copy(update={
                "seating": normalized.seating.model_copy(update={"available_seats": ceiling})
            })

        _apply_payload(event, normalized)
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning(f"Concurrent modification while updating event {event_id}")
            raise EditConflict("Event was modified by another request; reload and retry")

        db.refresh(event)
        logger.info(f"Event {event.id} updated")
        return event

import logging
from decimal import Decimal
from sqlalchemy import update
from sqlalchemy.orm import Session

from ticketdesk.errors import SeatUnavailable
from ticketdesk.models.event import Event
from ticketdesk.models.ticket import Ticket, TicketStatus

logger = logging.getLogger(__name__)

_COUNTERS = ["available_seats", "bookings_count", "revenue", "version"]


class SeatInventory:
    @staticmethod
    def reserve(db: Session, event: Event, amount: Decimal = Decimal("0")) -> None:
        """
        Take one seat from the event in the caller's transaction.
        The decrement is conditional, so two bookings racing for the last seat
        cannot both succeed; the loser gets SeatUnavailable.
        """
        db.flush()
        result = db.execute(
            update(Event)
            .where(Event.id == event.id, Event.available_seats > 0)
            .values(
                available_seats=Event.available_seats - 1,
                bookings_count=Event.bookings_count + 1,
                revenue=Event.revenue + amount,
                version=Event.version + 1
            )
            .execution_options(synchronize_session=False)
        )
        db.expire(event, _COUNTERS)

        if result.rowcount == 0:
            logger.warning(f"Seat reservation rejected for event {event.id}: sold out")
            raise SeatUnavailable(event.id)

    @staticmethod
    def release(db: Session, event: Event, amount: Decimal = Decimal("0")) -> bool:
        """Give one seat back to the event. Never raises availability above total seats."""
        db.flush()
        result = db.execute(
            update(Event)
            .where(Event.id == event.id, Event.available_seats < Event.total_seats)
            .values(
                available_seats=Event.available_seats + 1,
                bookings_count=Event.bookings_count - 1,
                revenue=Event.revenue - amount,
                version=Event.version + 1
            )
            .execution_options(synchronize_session=False)
        )
        db.expire(event, _COUNTERS)

        if result.rowcount == 0:
            logger.warning(f"Seat release for event {event.id} skipped: already at total seats")
            return False
        return True

    @staticmethod
    def next_seat_number(db: Session, event: Event) -> str:
        """First seat label (S001, S002, ...) not held by a booked or used ticket."""
        taken = {
            row[0] for row in db.query(Ticket.seat_number).filter(
                Ticket.event_id == event.id,
                Ticket.status.in_([TicketStatus.BOOKED, TicketStatus.USED])
            ).all()
        }
        for i in range(1, event.total_seats + 1):
            label = f"S{i:03d}"
            if label not in taken:
                return label
        return f"S{len(taken) + 1:03d}"

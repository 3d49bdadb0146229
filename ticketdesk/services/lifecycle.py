"""Ticket status transitions and orphan classification.

A ticket is an orphan when its event or its user cannot be resolved: the
reference is empty, or it points at a row that no longer exists. That is
derived on every read from the references themselves; nothing stores it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional, Union
from sqlalchemy.orm import Session

from ticketdesk.config import get_settings
from ticketdesk.errors import AssignmentTargetMissing, InvalidTransition, NotFoundError
from ticketdesk.models.event import Event
from ticketdesk.models.payment import Payment, PaymentMethod, PaymentStatus
from ticketdesk.models.ticket import Ticket, TicketStatus
from ticketdesk.models.user import User
from ticketdesk.services.inventory import SeatInventory

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolved:
    id: int
    record: Any


@dataclass(frozen=True)
class Unresolved:
    raw_id: Optional[int]


Reference = Union[Resolved, Unresolved]


def event_reference(ticket: Ticket) -> Reference:
    if ticket.event_id is not None and ticket.event is not None:
        return Resolved(ticket.event_id, ticket.event)
    return Unresolved(ticket.event_id)


def user_reference(ticket: Ticket) -> Reference:
    if ticket.user_id is not None and ticket.user is not None:
        return Resolved(ticket.user_id, ticket.user)
    return Unresolved(ticket.user_id)


def is_orphan(ticket: Ticket) -> bool:
    return (
        isinstance(event_reference(ticket), Unresolved)
        or isinstance(user_reference(ticket), Unresolved)
    )


class TicketAction:
    CHECK_IN = "check in"
    CANCEL = "cancel"
    EXPIRE = "expire"


TRANSITIONS = {
    (TicketStatus.BOOKED, TicketAction.CHECK_IN): TicketStatus.USED,
    (TicketStatus.BOOKED, TicketAction.CANCEL): TicketStatus.CANCELLED,
    (TicketStatus.BOOKED, TicketAction.EXPIRE): TicketStatus.EXPIRED,
}


def next_status(current: TicketStatus, action: str) -> TicketStatus:
    try:
        return TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidTransition(current.value, action)


class TicketLifecycleManager:
    @staticmethod
    def get_ticket(db: Session, ticket_id: int) -> Ticket:
        ticket = db.query(Ticket).filter(Ticket.id == ticket_id).first()
        if not ticket:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    @staticmethod
    def record_booking(
        db: Session,
        event: Event,
        user: User,
        payment: Payment,
        booking_ref: Optional[str] = None
    ) -> Ticket:
        """
        Create the booked ticket for a completed payment and take its seat.
        Runs inside the caller's transaction; the caller commits or rolls back.
        """
        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidTransition(payment.status.value, "book a ticket")

        SeatInventory.reserve(db, event, payment.amount)

        ticket = Ticket(
            event_id=event.id,
            user_id=user.id,
            seat_number=SeatInventory.next_seat_number(db, event),
            status=TicketStatus.BOOKED,
            booking_ref=booking_ref,
            payment_amount=payment.amount,
            payment_currency=payment.currency,
            payment_status=PaymentStatus.COMPLETED,
            payment_method=payment.method or PaymentMethod.FREE,
            transaction_id=payment.id,
            payment_date=datetime.utcnow()
        )
        db.add(ticket)
        db.flush()
        return ticket

    @staticmethod
    def check_in(db: Session, ticket_id: int, staff: User) -> Ticket:
        ticket = TicketLifecycleManager.get_ticket(db, ticket_id)
        ticket.status = next_status(ticket.status, TicketAction.CHECK_IN)
        ticket.checked_in_at = datetime.utcnow()
        ticket.checked_in_by = staff.id
        db.commit()
        db.refresh(ticket)
        return ticket

    @staticmethod
    def cancel(db: Session, ticket_id: int) -> Ticket:
        """Cancel a booked ticket and return its seat to the event."""
        ticket = TicketLifecycleManager.get_ticket(db, ticket_id)
        reference = event_reference(ticket)
        if isinstance(reference, Resolved) and reference.record.date < datetime.utcnow():
            raise InvalidTransition(ticket.status.value, "cancel a ticket for a past event")

        ticket.status = next_status(ticket.status, TicketAction.CANCEL)
        TicketLifecycleManager._release_seat(db, ticket)
        db.commit()
        db.refresh(ticket)
        return ticket

    @staticmethod
    def expire_past_events(db: Session, now: Optional[datetime] = None) -> int:
        """Expire booked tickets whose event ended longer ago than the grace period."""
        now = now or datetime.utcnow()
        cutoff = now - timedelta(minutes=settings.ticket_expiry_grace_minutes)

        tickets = db.query(Ticket).join(Event, Ticket.event_id == Event.id).filter(
            Ticket.status == TicketStatus.BOOKED,
            Event.date < cutoff
        ).all()

        for ticket in tickets:
            ticket.status = next_status(ticket.status, TicketAction.EXPIRE)
        db.commit()

        if tickets:
            logger.info(f"Expired {len(tickets)} ticket(s) for past events")
        return len(tickets)

    @staticmethod
    def assign(db: Session, ticket_id: int, event_id: Optional[int]) -> Ticket:
        """
        Point an orphan ticket at an existing event.
        A booked ticket takes a seat on the new event and gives back the one
        it held on its old event, if that event still exists.
        """
        if event_id is None:
            raise AssignmentTargetMissing(ticket_id)

        ticket = TicketLifecycleManager.get_ticket(db, ticket_id)
        if not is_orphan(ticket):
            raise InvalidTransition("assigned", "reassign a ticket that is not an orphan")

        target = db.query(Event).filter(Event.id == event_id).first()
        if not target:
            raise AssignmentTargetMissing(ticket_id, event_id)

        if ticket.event_id == target.id:
            return ticket

        try:
            if ticket.status == TicketStatus.BOOKED:
                amount = ticket.payment_amount or Decimal("0")
                SeatInventory.reserve(db, target, amount)
                TicketLifecycleManager._release_seat(db, ticket)
                ticket.seat_number = SeatInventory.next_seat_number(db, target)
            ticket.event_id = target.id
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(ticket)
        logger.info(f"Orphan ticket {ticket.ticket_code} assigned to event {target.id}")
        return ticket

    @staticmethod
    def cancel_orphan(db: Session, ticket_id: int) -> Ticket:
        """Cancel an orphan ticket whatever its status. Cancelling twice is a no-op."""
        ticket = TicketLifecycleManager.get_ticket(db, ticket_id)
        if ticket.status == TicketStatus.CANCELLED:
            return ticket

        if not is_orphan(ticket):
            raise InvalidTransition(ticket.status.value, "cancel a ticket that is not an orphan as orphan")

        if ticket.status == TicketStatus.BOOKED:
            TicketLifecycleManager._release_seat(db, ticket)
        ticket.status = TicketStatus.CANCELLED
        db.commit()
        db.refresh(ticket)
        logger.info(f"Orphan ticket {ticket.ticket_code} cancelled")
        return ticket

    @staticmethod
    def _release_seat(db: Session, ticket: Ticket) -> None:
        reference = event_reference(ticket)
        if isinstance(reference, Resolved):
            SeatInventory.release(db, reference.record, ticket.payment_amount or Decimal("0"))

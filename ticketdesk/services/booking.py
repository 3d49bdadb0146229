import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session

from ticketdesk.config import get_settings
from ticketdesk.errors import (
    BookingHoldExpired, EventNotBookable, NotFoundError, SeatUnavailable
)
from ticketdesk.models.booking import BookingHold, HoldStatus
from ticketdesk.models.event import Event, EventStatus
from ticketdesk.models.payment import PaymentMethod
from ticketdesk.models.ticket import Ticket
from ticketdesk.models.user import User
from ticketdesk.services.capacity import CENTS
from ticketdesk.services.lifecycle import TicketLifecycleManager
from ticketdesk.services.payment import PaymentService

settings = get_settings()
logger = logging.getLogger(__name__)


class BookingService:
    @staticmethod
    def get_bookable_event(db: Session, event_id: int) -> Event:
        event = db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise NotFoundError("Event", event_id)
        if event.status != EventStatus.PUBLISHED:
            raise EventNotBookable("Event not available for booking")
        if event.date < datetime.utcnow():
            raise EventNotBookable("Event already occurred")
        return event

    @staticmethod
    def initiate(db: Session, user: User, event_id: int) -> BookingHold:
        """
        Open a booking session holding the quoted price for a limited time.
        The seat itself is only taken when the booking is confirmed.
        """
        event = BookingService.get_bookable_event(db, event_id)
        if event.available_seats <= 0:
            raise SeatUnavailable(event.id)

        amount = Decimal(event.pricing_amount or 0).quantize(CENTS)
        hold = BookingHold(
            id=f"bs_{uuid.uuid4().hex[:24]}",
            user_id=user.id,
            event_id=event.id,
            total_amount=amount,
            fees=(amount * settings.booking_fee_rate).quantize(CENTS),
            status=HoldStatus.HELD,
            expires_at=datetime.utcnow() + timedelta(minutes=settings.booking_hold_minutes)
        )
        db.add(hold)
        db.commit()
        db.refresh(hold)
        return hold

    @staticmethod
    def get_hold(db: Session, booking_id: str, user: User) -> BookingHold:
        hold = db.query(BookingHold).filter(BookingHold.id == booking_id).first()
        if not hold or hold.user_id != user.id:
            raise NotFoundError("Booking session", booking_id)
        return hold

    @staticmethod
    def get_active_hold(db: Session, booking_id: str, user: User) -> BookingHold:
        hold = BookingService.get_hold(db, booking_id, user)

        if hold.status == HoldStatus.HELD and hold.expires_at < datetime.utcnow():
            hold.status = HoldStatus.EXPIRED
            db.commit()
        if hold.status != HoldStatus.HELD:
            raise BookingHoldExpired(booking_id)
        return hold

    @staticmethod
    def confirm(
        db: Session,
        user: User,
        event_id: int,
        payment_id: str,
        booking_id: str,
        payment_method: PaymentMethod = PaymentMethod.CREDIT_CARD,
        payment_token: Optional[str] = None
    ) -> tuple[BookingHold, Ticket]:
        """
        Turn a paid booking session into a booked ticket.
        If the seat is gone by now the payment is refunded and SeatUnavailable raised.
        """
        hold = BookingService.get_active_hold(db, booking_id, user)
        if hold.event_id != event_id:
            raise EventNotBookable("Booking session does not belong to this event")

        event = BookingService.get_bookable_event(db, event_id)
        payment = PaymentService.get_completed_payment(db, payment_id, user, hold, payment_token)
        if payment_method and payment.method != PaymentMethod.FREE:
            payment.method = payment_method

        try:
            ticket = TicketLifecycleManager.record_booking(db, event, user, payment, booking_ref=hold.id)
        except SeatUnavailable:
            db.rollback()
            PaymentService.refund(db, payment_id)
            hold.status = HoldStatus.RELEASED
            db.commit()
            logger.warning(f"Booking {booking_id} lost the last seat of event {event_id}; payment refunded")
            raise SeatUnavailable(event_id, payment_id=payment_id)

        hold.status = HoldStatus.CONFIRMED
        db.commit()
        db.refresh(ticket)
        logger.info(f"Booking {booking_id} confirmed as ticket {ticket.ticket_code}")
        return hold, ticket

    @staticmethod
    def release(db: Session, user: User, booking_id: str) -> BookingHold:
        """Abandon a booking session. Releasing a closed session changes nothing."""
        hold = BookingService.get_hold(db, booking_id, user)
        if hold.status == HoldStatus.HELD:
            hold.status = HoldStatus.RELEASED
            db.commit()
            db.refresh(hold)
        return hold

    @staticmethod
    def expire_stale_holds(db: Session, now: Optional[datetime] = None) -> int:
        now = now or datetime.utcnow()
        count = db.query(BookingHold).filter(
            BookingHold.status == HoldStatus.HELD,
            BookingHold.expires_at < now
        ).update({BookingHold.status: HoldStatus.EXPIRED}, synchronize_session=False)
        db.commit()
        return count

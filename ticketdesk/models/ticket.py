from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ticketdesk.database import Base
from ticketdesk.models.payment import PaymentMethod, PaymentStatus
import enum
import uuid


class TicketStatus(str, enum.Enum):
    BOOKED = "booked"
    USED = "used"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


def generate_ticket_code() -> str:
    return f"TKT-{uuid.uuid4().hex[:8].upper()}"


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    ticket_code = Column(String(20), unique=True, default=generate_ticket_code)
    # Both references are nullable and unenforced; a missing row makes the ticket an orphan.
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    seat_number = Column(String(10), nullable=False)
    status = Column(Enum(TicketStatus), default=TicketStatus.BOOKED, index=True)
    booking_date = Column(DateTime, server_default=func.now())
    booking_ref = Column(String(40), nullable=True)

    payment_amount = Column(Numeric(10, 2), nullable=False, default=0)
    payment_currency = Column(String(3), default="USD")
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING)
    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.FREE)
    transaction_id = Column(String(32), nullable=True)
    payment_date = Column(DateTime, nullable=True)

    checked_in_at = Column(DateTime, nullable=True)
    checked_in_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    event = relationship("Event", back_populates="tickets")
    user = relationship("User", back_populates="tickets", foreign_keys=[user_id])

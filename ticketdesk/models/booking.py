from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ticketdesk.database import Base
import enum


class HoldStatus(str, enum.Enum):
    HELD = "held"
    CONFIRMED = "confirmed"
    RELEASED = "released"
    EXPIRED = "expired"


class BookingHold(Base):
    __tablename__ = "booking_holds"

    id = Column(String(40), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    fees = Column(Numeric(10, 2), nullable=False, default=0)
    status = Column(Enum(HoldStatus), default=HoldStatus.HELD, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    event = relationship("Event")

from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ticketdesk.database import Base
import enum


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PricingType(str, enum.Enum):
    FREE = "free"
    PAID = "paid"


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    title = Column(String(100), nullable=False)
    description = Column(String(2000), nullable=False, default="")
    category = Column(String(50), nullable=False, index=True)
    date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=True)
    status = Column(Enum(EventStatus), default=EventStatus.DRAFT, index=True)

    venue_name = Column(String(200), nullable=True)
    venue_address = Column(String(300), nullable=True)
    venue_city = Column(String(100), nullable=True)
    venue_state = Column(String(100), nullable=True)
    venue_country = Column(String(100), nullable=False)
    venue_capacity = Column(Integer, nullable=False)

    total_seats = Column(Integer, nullable=False)
    available_seats = Column(Integer, nullable=False)

    pricing_type = Column(Enum(PricingType), default=PricingType.FREE)
    pricing_amount = Column(Numeric(10, 2), default=0)
    pricing_currency = Column(String(3), default="USD")

    bookings_count = Column(Integer, default=0)
    revenue = Column(Numeric(12, 2), default=0)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organizer = relationship("User", back_populates="organized_events")
    tickets = relationship("Ticket", back_populates="event")

    # Flushes of an event whose row changed underneath fail instead of overwriting seat counters.
    __mapper_args__ = {"version_id_col": version}

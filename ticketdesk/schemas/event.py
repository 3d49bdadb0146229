from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from ticketdesk.models.event import Event, EventStatus, PricingType

# Seat counts stay loosely typed so the capacity rules, not the parser,
# decide whether a value such as 12.5 is acceptable.
SeatCount = Optional[Union[int, float]]


class VenueIn(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    capacity: SeatCount = None


class SeatingIn(BaseModel):
    total_seats: SeatCount = Field(None, alias="totalSeats")
    available_seats: SeatCount = Field(None, alias="availableSeats")

    class Config:
        populate_by_name = True


class PricingIn(BaseModel):
    type: PricingType = PricingType.FREE
    amount: Optional[Decimal] = None
    currency: str = "USD"


class EventPayload(BaseModel):
    """A candidate event record, as submitted by an organizer."""

    title: str
    description: str = ""
    category: Optional[str] = None
    date: datetime
    end_date: Optional[datetime] = Field(None, alias="endDate")
    status: EventStatus = EventStatus.DRAFT
    venue: VenueIn = Field(default_factory=VenueIn)
    seating: SeatingIn = Field(default_factory=SeatingIn)
    pricing: PricingIn = Field(default_factory=PricingIn)

    class Config:
        populate_by_name = True


class VenueUpdate(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    capacity: SeatCount = None


class SeatingUpdate(BaseModel):
    total_seats: SeatCount = Field(None, alias="totalSeats")
    available_seats: SeatCount = Field(None, alias="availableSeats")

    class Config:
        populate_by_name = True


class PricingUpdate(BaseModel):
    type: Optional[PricingType] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    date: Optional[datetime] = None
    end_date: Optional[datetime] = Field(None, alias="endDate")
    status: Optional[EventStatus] = None
    venue: Optional[VenueUpdate] = None
    seating: Optional[SeatingUpdate] = None
    pricing: Optional[PricingUpdate] = None

    class Config:
        populate_by_name = True


class VenueOut(BaseModel):
    name: Optional[str]
    address: Optional[str]
    city: Optional[str]
    state: Optional[str]
    country: str
    capacity: int


class SeatingOut(BaseModel):
    total_seats: int = Field(serialization_alias="totalSeats")
    available_seats: int = Field(serialization_alias="availableSeats")


class PricingOut(BaseModel):
    type: PricingType
    amount: Decimal
    currency: str


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    category: str
    date: datetime
    end_date: Optional[datetime] = Field(None, serialization_alias="endDate")
    status: EventStatus
    organizer_id: Optional[int] = Field(None, serialization_alias="organizerId")
    venue: VenueOut
    seating: SeatingOut
    pricing: PricingOut
    bookings: int = 0
    revenue: Decimal = Decimal("0")

    @classmethod
    def from_model(cls, event: Event) -> "EventResponse":
        return cls(
            id=event.id,
            title=event.title,
            description=event.description or "",
            category=event.category,
            date=event.date,
            end_date=event.end_date,
            status=event.status,
            organizer_id=event.organizer_id,
            venue=VenueOut(
                name=event.venue_name,
                address=event.venue_address,
                city=event.venue_city,
                state=event.venue_state,
                country=event.venue_country,
                capacity=event.venue_capacity,
            ),
            seating=SeatingOut(
                total_seats=event.total_seats,
                available_seats=event.available_seats,
            ),
            pricing=PricingOut(
                type=event.pricing_type,
                amount=event.pricing_amount or Decimal("0"),
                currency=event.pricing_currency or "USD",
            ),
            bookings=event.bookings_count or 0,
            revenue=event.revenue or Decimal("0"),
        )


class EventPage(BaseModel):
    events: list[EventResponse]
    pagination: dict

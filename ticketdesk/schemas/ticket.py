from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ticketdesk.models.payment import PaymentMethod, PaymentStatus
from ticketdesk.models.ticket import Ticket, TicketStatus
from ticketdesk.services.lifecycle import Resolved, event_reference, is_orphan, user_reference


class TicketEventInfo(BaseModel):
    id: int
    title: str
    date: datetime
    status: str


class TicketUserInfo(BaseModel):
    id: int
    name: str
    email: str


class TicketPaymentInfo(BaseModel):
    amount: Decimal
    currency: str
    status: PaymentStatus
    payment_method: PaymentMethod = Field(serialization_alias="paymentMethod")
    transaction_id: Optional[str] = Field(None, serialization_alias="transactionId")
    payment_date: Optional[datetime] = Field(None, serialization_alias="paymentDate")


class TicketResponse(BaseModel):
    id: int
    ticket_id: str = Field(serialization_alias="ticketId")
    event_id: Optional[int] = Field(None, serialization_alias="eventId")
    user_id: Optional[int] = Field(None, serialization_alias="userId")
    event: Optional[TicketEventInfo] = None
    user: Optional[TicketUserInfo] = None
    seat_number: str = Field(serialization_alias="seatNumber")
    status: TicketStatus
    is_orphan: bool = Field(serialization_alias="isOrphan")
    booking_date: Optional[datetime] = Field(None, serialization_alias="bookingDate")
    checked_in_at: Optional[datetime] = Field(None, serialization_alias="checkedInAt")
    payment: TicketPaymentInfo

    @classmethod
    def from_model(cls, ticket: Ticket) -> "TicketResponse":
        event_ref = event_reference(ticket)
        user_ref = user_reference(ticket)

        event_info = None
        if isinstance(event_ref, Resolved):
            event = event_ref.record
            event_info = TicketEventInfo(
                id=event.id, title=event.title, date=event.date, status=event.status.value
            )

        user_info = None
        if isinstance(user_ref, Resolved):
            user = user_ref.record
            user_info = TicketUserInfo(id=user.id, name=user.name, email=user.email)

        return cls(
            id=ticket.id,
            ticket_id=ticket.ticket_code,
            event_id=ticket.event_id,
            user_id=ticket.user_id,
            event=event_info,
            user=user_info,
            seat_number=ticket.seat_number,
            status=ticket.status,
            is_orphan=is_orphan(ticket),
            booking_date=ticket.booking_date,
            checked_in_at=ticket.checked_in_at,
            payment=TicketPaymentInfo(
                amount=ticket.payment_amount or Decimal("0"),
                currency=ticket.payment_currency or "USD",
                status=ticket.payment_status,
                payment_method=ticket.payment_method,
                transaction_id=ticket.transaction_id,
                payment_date=ticket.payment_date,
            ),
        )


class Pagination(BaseModel):
    current: int
    pages: int
    total: int


class TicketStatisticsResponse(BaseModel):
    status_counts: dict[str, int] = Field(serialization_alias="statusCounts")
    orphan_count: int = Field(serialization_alias="orphanCount")
    total: int


class AdminTicketList(BaseModel):
    tickets: list[TicketResponse]
    statistics: TicketStatisticsResponse
    pagination: Pagination


class TicketList(BaseModel):
    tickets: list[TicketResponse]
    pagination: Pagination


class AssignRequest(BaseModel):
    event_id: Optional[int] = Field(None, alias="eventId")

    class Config:
        populate_by_name = True

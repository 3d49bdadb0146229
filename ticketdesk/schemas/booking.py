from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ticketdesk.models.booking import HoldStatus
from ticketdesk.models.payment import PaymentMethod, PaymentStatus
from ticketdesk.schemas.ticket import TicketResponse


class InitiateRequest(BaseModel):
    event_id: int = Field(alias="eventId")

    class Config:
        populate_by_name = True


class BookingSessionInfo(BaseModel):
    id: str = Field(serialization_alias="_id")
    event_id: int = Field(serialization_alias="eventId")
    total_amount: Decimal = Field(serialization_alias="totalAmount")
    fees: Decimal
    status: HoldStatus
    expires_at: datetime = Field(serialization_alias="expiresAt")

    class Config:
        from_attributes = True


class InitiateResponse(BaseModel):
    booking_session: BookingSessionInfo = Field(serialization_alias="bookingSession")


class PaymentRequest(BaseModel):
    amount: Decimal
    currency: str = "USD"
    payment_method: PaymentMethod = Field(PaymentMethod.CREDIT_CARD, alias="paymentMethod")
    payment_details: dict = Field(default_factory=dict, alias="paymentDetails")
    booking_id: Optional[str] = Field(None, alias="bookingId")
    event_id: Optional[int] = Field(None, alias="eventId")

    class Config:
        populate_by_name = True


class PaymentInfo(BaseModel):
    id: str
    status: PaymentStatus
    amount: Decimal
    currency: str
    method: PaymentMethod
    masked_last4: Optional[str] = Field(None, serialization_alias="maskedLast4")
    booking_id: Optional[str] = Field(None, serialization_alias="bookingId")
    event_id: Optional[int] = Field(None, serialization_alias="eventId")
    processed_at: Optional[datetime] = Field(None, serialization_alias="processedAt")


class PaymentResponse(BaseModel):
    payment_id: str = Field(serialization_alias="paymentId")
    token: str
    payment: PaymentInfo


class ConfirmRequest(BaseModel):
    event_id: int = Field(alias="eventId")
    payment_id: str = Field(alias="paymentId")
    booking_id: str = Field(alias="bookingId")
    payment_method: PaymentMethod = Field(PaymentMethod.CREDIT_CARD, alias="paymentMethod")
    payment_token: Optional[str] = Field(None, alias="paymentToken")

    class Config:
        populate_by_name = True


class BookingRef(BaseModel):
    id: str = Field(serialization_alias="_id")
    status: HoldStatus


class ConfirmResponse(BaseModel):
    booking: BookingRef
    ticket: TicketResponse

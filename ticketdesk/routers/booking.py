from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ticketdesk.database import get_db
from ticketdesk.models.user import User
from ticketdesk.schemas.booking import (
    InitiateRequest, InitiateResponse, BookingSessionInfo,
    ConfirmRequest, ConfirmResponse, BookingRef
)
from ticketdesk.schemas.ticket import TicketResponse
from ticketdesk.services.auth import get_current_user_required
from ticketdesk.services.booking import BookingService

router = APIRouter(prefix="/booking", tags=["booking"])


@router.post("/initiate", response_model=InitiateResponse)
async def initiate_booking(
    request_data: InitiateRequest,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    hold = BookingService.initiate(db, user, request_data.event_id)
    return InitiateResponse(booking_session=BookingSessionInfo.model_validate(hold))


@router.post("/confirm", response_model=ConfirmResponse)
async def confirm_booking(
    request_data: ConfirmRequest,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    hold, ticket = BookingService.confirm(
        db,
        user,
        event_id=request_data.event_id,
        payment_id=request_data.payment_id,
        booking_id=request_data.booking_id,
        payment_method=request_data.payment_method,
        payment_token=request_data.payment_token
    )
    return ConfirmResponse(
        booking=BookingRef(id=hold.id, status=hold.status),
        ticket=TicketResponse.from_model(ticket)
    )


@router.post("/{booking_id}/cancel", response_model=InitiateResponse)
async def cancel_booking(
    booking_id: str,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    hold = BookingService.release(db, user, booking_id)
    return InitiateResponse(booking_session=BookingSessionInfo.model_validate(hold))

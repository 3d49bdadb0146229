from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address

from ticketdesk.config import get_settings
from ticketdesk.database import get_db
from ticketdesk.models.payment import Payment
from ticketdesk.models.user import User
from ticketdesk.schemas.booking import PaymentRequest, PaymentResponse, PaymentInfo
from ticketdesk.services.auth import get_current_user_required
from ticketdesk.services.booking import BookingService
from ticketdesk.services.payment import PaymentService

settings = get_settings()

router = APIRouter(prefix="/payments", tags=["payments"])
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def _payment_info(payment: Payment) -> PaymentInfo:
    return PaymentInfo(
        id=payment.id,
        status=payment.status,
        amount=payment.amount,
        currency=payment.currency,
        method=payment.method,
        masked_last4=payment.masked_last4,
        booking_id=payment.booking_ref,
        event_id=payment.event_id,
        processed_at=payment.created_at
    )


@router.post("/process", response_model=PaymentResponse)
@limiter.limit("20/minute")
async def process_payment(
    request: Request,
    payment_data: PaymentRequest,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    hold = None
    if payment_data.booking_id:
        hold = BookingService.get_active_hold(db, payment_data.booking_id, user)

    payment = PaymentService.process(
        db,
        user,
        amount=payment_data.amount,
        currency=payment_data.currency,
        method=payment_data.payment_method,
        payment_details=payment_data.payment_details,
        hold=hold,
        event_id=payment_data.event_id
    )

    return PaymentResponse(
        payment_id=payment.id,
        token=PaymentService.issue_token(payment),
        payment=_payment_info(payment)
    )

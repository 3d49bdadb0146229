import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ticketdesk.config import get_settings
from ticketdesk.errors import NotFoundError, PaymentRejected
from ticketdesk.models.booking import BookingHold
from ticketdesk.models.payment import Payment, PaymentMethod, PaymentStatus
from ticketdesk.models.ticket import Ticket
from ticketdesk.models.user import User

settings = get_settings()
logger = logging.getLogger(__name__)

# Simulated processor: cards ending in this suffix are declined.
DECLINED_CARD_SUFFIX = "0002"


class PaymentService:
    @staticmethod
    def process(
        db: Session,
        user: User,
        amount: Decimal,
        currency: str = "USD",
        method: PaymentMethod = PaymentMethod.CREDIT_CARD,
        payment_details: Optional[dict] = None,
        hold: Optional[BookingHold] = None,
        event_id: Optional[int] = None
    ) -> Payment:
        """
        Simulate charging the user.
        When a booking hold is given the amount must match what the hold quoted.
        """
        payment_details = payment_details or {}

        if amount is None or amount < 0:
            raise PaymentRejected("Valid amount is required")

        if hold is not None:
            if hold.user_id != user.id:
                raise NotFoundError("Booking session", hold.id)
            if amount != hold.total_amount:
                raise PaymentRejected("Amount does not match the booking session")
            event_id = hold.event_id
        elif amount <= 0:
            raise PaymentRejected("Valid amount is required")

        digits = "".join(ch for ch in str(payment_details.get("cardNumber", "")) if ch.isdigit())
        if digits.endswith(DECLINED_CARD_SUFFIX):
            logger.info(f"Simulated decline for user {user.id}")
            raise PaymentRejected("Payment was declined")

        payment = Payment(
            id=f"tx_{uuid.uuid4().hex[:24]}",
            user_id=user.id,
            event_id=event_id,
            booking_ref=hold.id if hold is not None else None,
            amount=amount,
            currency=currency,
            method=PaymentMethod.FREE if amount == 0 else method,
            masked_last4=digits[-4:] or None,
            status=PaymentStatus.COMPLETED
        )
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    @staticmethod
    def issue_token(payment: Payment) -> str:
        """Sign a short-lived token binding the payment to its user and event."""
        expire = datetime.utcnow() + timedelta(minutes=settings.payment_token_expire_minutes)
        to_encode = {
            "txId": payment.id,
            "userId": str(payment.user_id),
            "eventId": payment.event_id,
            "exp": expire
        }
        return jwt.encode(to_encode, settings.payment_token_secret, algorithm=settings.algorithm)

    @staticmethod
    def verify_token(token: str, payment_id: str, user: User) -> bool:
        try:
            payload = jwt.decode(token, settings.payment_token_secret, algorithms=[settings.algorithm])
        except JWTError:
            return False
        return payload.get("txId") == payment_id and payload.get("userId") == str(user.id)

    @staticmethod
    def get_completed_payment(
        db: Session,
        payment_id: str,
        user: User,
        hold: BookingHold,
        token: Optional[str] = None
    ) -> Payment:
        """Return the payment a confirmation refers to, or raise PaymentRejected."""
        payment = db.query(Payment).filter(Payment.id == payment_id).first()

        if not payment or payment.user_id != user.id:
            raise PaymentRejected("Payment not found")
        if payment.status != PaymentStatus.COMPLETED:
            raise PaymentRejected(f"Payment is {payment.status.value}")
        if payment.booking_ref and payment.booking_ref != hold.id:
            raise PaymentRejected("Payment belongs to another booking session")
        if payment.amount != hold.total_amount:
            raise PaymentRejected("Payment amount does not match the booking session")
        if db.query(Ticket).filter(Ticket.transaction_id == payment_id).first():
            raise PaymentRejected("Payment was already used for a booking")
        if token is not None and not PaymentService.verify_token(token, payment_id, user):
            raise PaymentRejected("Invalid or mismatched payment token")

        return payment

    @staticmethod
    def refund(db: Session, payment_id: str) -> bool:
        payment = db.query(Payment).filter(Payment.id == payment_id).first()
        if not payment or payment.status != PaymentStatus.COMPLETED:
            return False

        payment.status = PaymentStatus.REFUNDED
        db.commit()
        logger.warning(f"Payment {payment_id} refunded")
        return True

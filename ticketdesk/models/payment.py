from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Enum
from sqlalchemy.sql import func
from ticketdesk.database import Base
import enum


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"
    CASH = "cash"
    FREE = "free"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(32), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    event_id = Column(Integer, nullable=True)
    booking_ref = Column(String(40), nullable=True, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), default="USD")
    method = Column(Enum(PaymentMethod), default=PaymentMethod.CREDIT_CARD)
    masked_last4 = Column(String(4), nullable=True)
    status = Column(Enum(PaymentStatus), default=PaymentStatus.COMPLETED)
    created_at = Column(DateTime, server_default=func.now())

"""Error taxonomy shared by the backend services and the client core.

Every error carries an ``ErrorCode`` and the HTTP status the API answers with.
The FastAPI app turns any ``TicketDeskError`` into
``{"detail": {"code": ..., "message": ..., **extra}}``.
"""

import enum
from typing import Any, Optional


class ErrorCode(str, enum.Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    SEAT_UNAVAILABLE = "SEAT_UNAVAILABLE"
    ASSIGNMENT_TARGET_MISSING = "ASSIGNMENT_TARGET_MISSING"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    EVENT_NOT_BOOKABLE = "EVENT_NOT_BOOKABLE"
    BOOKING_HOLD_EXPIRED = "BOOKING_HOLD_EXPIRED"
    PAYMENT_REJECTED = "PAYMENT_REJECTED"
    PAYMENT_CHARGED_NOT_CONFIRMED = "PAYMENT_CHARGED_NOT_CONFIRMED"
    TRANSIENT_NETWORK = "TRANSIENT_NETWORK"
    COLLABORATOR_TIMEOUT = "COLLABORATOR_TIMEOUT"
    COLLABORATOR_ERROR = "COLLABORATOR_ERROR"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    EDIT_CONFLICT = "EDIT_CONFLICT"


class TicketDeskError(Exception):
    """Base error with a code and a user-safe message."""

    code = ErrorCode.COLLABORATOR_ERROR
    status_code = 500

    def __init__(self, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message, **self.extra}

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class EventValidationError(TicketDeskError):
    """Capacity or pricing rules rejected an event record."""

    code = ErrorCode.VALIDATION_FAILED
    status_code = 400

    def __init__(self, violations: list[str]) -> None:
        super().__init__("Validation error", errors=list(violations))
        self.violations = list(violations)


class NotFoundError(TicketDeskError):
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, resource: str, resource_id: Any) -> None:
        super().__init__(f"{resource} not found")
        self.resource = resource
        self.resource_id = resource_id


class SeatUnavailable(TicketDeskError):
    """Lost the race for the last seat, or the event is sold out."""

    code = ErrorCode.SEAT_UNAVAILABLE
    status_code = 409

    def __init__(self, event_id: Any, payment_id: Optional[str] = None) -> None:
        extra = {"eventId": event_id}
        if payment_id is not None:
            extra["paymentId"] = payment_id
        super().__init__("No seats available for this event", **extra)
        self.event_id = event_id
        self.payment_id = payment_id


class AssignmentTargetMissing(TicketDeskError):
    code = ErrorCode.ASSIGNMENT_TARGET_MISSING
    status_code = 400

    def __init__(self, ticket_id: Any, event_id: Any = None) -> None:
        super().__init__("A valid target event is required to assign this ticket")
        self.ticket_id = ticket_id
        self.event_id = event_id


class InvalidTransition(TicketDeskError):
    code = ErrorCode.INVALID_TRANSITION
    status_code = 400

    def __init__(self, current: str, action: str) -> None:
        super().__init__(f"Cannot {action} from state '{current}'")
        self.current = current
        self.action = action


class EventNotBookable(TicketDeskError):
    code = ErrorCode.EVENT_NOT_BOOKABLE
    status_code = 400


class BookingHoldExpired(TicketDeskError):
    code = ErrorCode.BOOKING_HOLD_EXPIRED
    status_code = 410

    def __init__(self, booking_id: str) -> None:
        super().__init__("Booking session is no longer active")
        self.booking_id = booking_id


class PaymentRejected(TicketDeskError):
    code = ErrorCode.PAYMENT_REJECTED
    status_code = 400


class PaymentChargedButNotConfirmed(TicketDeskError):
    """The payment went through but the booking confirmation did not.

    A real charge exists without a ticket; support has to reconcile it.
    """

    code = ErrorCode.PAYMENT_CHARGED_NOT_CONFIRMED
    status_code = 502

    def __init__(self, payment_id: str, booking_id: str, cause: Optional[Exception] = None) -> None:
        super().__init__(
            "Payment was charged but the booking could not be confirmed",
            paymentId=payment_id,
            bookingId=booking_id,
        )
        self.payment_id = payment_id
        self.booking_id = booking_id
        self.cause = cause


class TransientNetworkError(TicketDeskError):
    """The request never reached the collaborator; retrying is safe."""

    code = ErrorCode.TRANSIENT_NETWORK
    status_code = 503


class CollaboratorTimeout(TransientNetworkError):
    """The collaborator did not answer in time; the outcome is unknown."""

    code = ErrorCode.COLLABORATOR_TIMEOUT
    status_code = 504


class CollaboratorError(TicketDeskError):
    """The collaborator answered with an error status."""

    code = ErrorCode.COLLABORATOR_ERROR
    status_code = 502

    def __init__(self, message: str, status: int, **extra: Any) -> None:
        super().__init__(message, **extra)
        self.status = status


class MalformedResponse(TicketDeskError):
    code = ErrorCode.MALFORMED_RESPONSE
    status_code = 502


class EditConflict(TicketDeskError):
    """The record changed since it was read; reload and retry."""

    code = ErrorCode.EDIT_CONFLICT
    status_code = 409

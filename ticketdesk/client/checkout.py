"""Checkout state machine for a single ticket purchase.

    initiated --proceed_to_payment--> payment_pending --submit_payment--> confirmed
         \                                   \
          +----------- cancel ----------------+--- any failure ------> failed

Confirmed and failed are terminal. A session never reaches confirmed unless the
payment call and then the booking confirmation call both succeeded.
"""

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol

from ticketdesk.client.http import ConfirmedBooking, InitiatedBooking, PaymentReceipt
from ticketdesk.errors import (
    CollaboratorTimeout, InvalidTransition, MalformedResponse, PaymentChargedButNotConfirmed,
    SeatUnavailable, TicketDeskError, TransientNetworkError
)

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    INITIATED = "initiated"
    PAYMENT_PENDING = "payment_pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({SessionState.CONFIRMED, SessionState.FAILED})


class BookingGateway(Protocol):
    def initiate_booking(self, event_id: int) -> InitiatedBooking: ...

    def process_payment(
        self,
        amount: Decimal,
        currency: str,
        payment_method: str = "credit_card",
        payment_details: Optional[dict] = None,
        booking_id: Optional[str] = None,
        event_id: Optional[int] = None
    ) -> PaymentReceipt: ...

    def confirm_booking(
        self,
        event_id: int,
        payment_id: str,
        booking_id: str,
        payment_method: str = "credit_card",
        payment_token: Optional[str] = None
    ) -> ConfirmedBooking: ...

    def release_booking(self, booking_id: str) -> None: ...


@dataclass(frozen=True)
class EventSnapshot:
    """The parts of an event a checkout needs: what to charge, in what currency."""

    id: int
    title: str
    price: Decimal
    currency: str = "USD"
    available_seats: Optional[int] = None

    @classmethod
    def from_api(cls, data: dict) -> "EventSnapshot":
        try:
            pricing = data["pricing"]
            return cls(
                id=data["id"],
                title=data["title"],
                price=Decimal(str(pricing["amount"])),
                currency=pricing.get("currency") or "USD",
                available_seats=(data.get("seating") or {}).get("availableSeats")
            )
        except (KeyError, TypeError, ArithmeticError) as e:
            raise MalformedResponse(f"Event payload is incomplete: {e}")


class BookingSessionStateMachine:
    def __init__(self, gateway: BookingGateway, event: EventSnapshot, booking: InitiatedBooking):
        self.gateway = gateway
        self.event = event
        self.booking = booking
        self.state = SessionState.INITIATED
        self.history: list[SessionState] = [SessionState.INITIATED]
        self.receipt: Optional[PaymentReceipt] = None
        self.confirmation: Optional[ConfirmedBooking] = None
        self.failure: Optional[TicketDeskError] = None

    @classmethod
    def initiate(cls, gateway: BookingGateway, event: EventSnapshot) -> "BookingSessionStateMachine":
        """Open a booking session. If the initiate call fails no session exists."""
        booking = gateway.initiate_booking(event.id)
        logger.info(f"Booking session {booking.booking_id} opened for event {event.id}")
        return cls(gateway, event, booking)

    @property
    def booking_id(self) -> str:
        return self.booking.booking_id

    @property
    def payment_id(self) -> Optional[str]:
        return self.receipt.payment_id if self.receipt else None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def _move(self, state: SessionState) -> None:
        self.state = state
        self.history.append(state)

    def _require(self, expected: SessionState, action: str) -> None:
        if self.state != expected:
            raise InvalidTransition(self.state.value, action)

    def _fail(self, error: TicketDeskError, release: bool = True) -> None:
        self.failure = error
        self._move(SessionState.FAILED)
        if release:
            self._release_hold()

    def _release_hold(self) -> None:
        try:
            self.gateway.release_booking(self.booking_id)
        except TicketDeskError as e:
            # The hold still lapses on its own at expiresAt.
            logger.warning(f"Could not release booking session {self.booking_id}: {e}")

    def proceed_to_payment(self) -> None:
        self._require(SessionState.INITIATED, "proceed to payment")
        self._move(SessionState.PAYMENT_PENDING)

    def submit_payment(
        self,
        payment_method: str = "credit_card",
        payment_details: Optional[dict] = None
    ) -> ConfirmedBooking:
        """
        Charge the event price, then confirm the booking with that payment.

        Connection failures that never reached the server leave the session in
        payment_pending and can be retried; a payment already taken is not
        charged again on retry.
        """
        self._require(SessionState.PAYMENT_PENDING, "submit payment")

        if self.receipt is None:
            try:
                self.receipt = self.gateway.process_payment(
                    amount=self.event.price,
                    currency=self.event.currency,
                    payment_method=payment_method,
                    payment_details=payment_details,
                    booking_id=self.booking_id,
                    event_id=self.event.id
                )
            except CollaboratorTimeout as e:
                self._fail(e)
                raise
            except TransientNetworkError:
                raise
            except TicketDeskError as e:
                self._fail(e)
                raise

        try:
            self.confirmation = self.gateway.confirm_booking(
                event_id=self.event.id,
                payment_id=self.receipt.payment_id,
                booking_id=self.booking_id,
                payment_method=payment_method,
                payment_token=self.receipt.token
            )
        except SeatUnavailable as e:
            # The server refunds the payment and releases the session itself.
            self._fail(e, release=False)
            raise
        except CollaboratorTimeout as e:
            raise self._charged_but_unconfirmed(e) from e
        except TransientNetworkError:
            raise
        except TicketDeskError as e:
            raise self._charged_but_unconfirmed(e) from e

        self._move(SessionState.CONFIRMED)
        logger.info(f"Booking session {self.booking_id} confirmed with payment {self.payment_id}")
        return self.confirmation

    def _charged_but_unconfirmed(self, cause: TicketDeskError) -> PaymentChargedButNotConfirmed:
        error = PaymentChargedButNotConfirmed(self.receipt.payment_id, self.booking_id, cause)
        logger.error(
            f"Payment {self.receipt.payment_id} charged but booking {self.booking_id} "
            f"not confirmed: {cause}"
        )
        # The hold is kept so support can still confirm against it.
        self._fail(error, release=False)
        return error

    def cancel(self) -> None:
        """Abandon the session and give the held seat back."""
        if self.is_terminal:
            raise InvalidTransition(self.state.value, "cancel")
        if self.receipt is not None:
            raise self._charged_but_unconfirmed(TicketDeskError("Booking cancelled after payment"))
        self._fail(TicketDeskError("Booking cancelled by user"))

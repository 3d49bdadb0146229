"""httpx client for the TicketDesk HTTP API.

Transport failures and error responses are translated into the shared error
taxonomy so callers never see raw httpx exceptions.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from ticketdesk.config import get_settings
from ticketdesk.errors import (
    CollaboratorError, CollaboratorTimeout, EditConflict, ErrorCode, EventValidationError,
    MalformedResponse, PaymentRejected, SeatUnavailable, TransientNetworkError
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InitiatedBooking:
    booking_id: str
    total_amount: Decimal
    fees: Decimal
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class PaymentReceipt:
    payment_id: str
    token: str
    status: str
    amount: Decimal


@dataclass(frozen=True)
class ConfirmedBooking:
    booking_id: str
    ticket: dict

    @property
    def ticket_code(self) -> str:
        return self.ticket["ticketId"]


def _pluck(body: Any, *path: str) -> Any:
    value = body
    try:
        for key in path:
            value = value[key]
    except (KeyError, TypeError, IndexError):
        raise MalformedResponse(f"Response is missing '{'.'.join(path)}'")
    return value


def _decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise MalformedResponse(f"'{name}' is not a number")


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise MalformedResponse("'expiresAt' is not a timestamp")


class TicketDeskClient:
    """
    Talks to the API over ``httpx.Client``. Any client with the same interface
    can be passed in, e.g. FastAPI's ``TestClient``.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None
    ):
        settings = get_settings()
        self.token = token
        self._client = client or httpx.Client(
            base_url=base_url or settings.api_base_url,
            timeout=httpx.Timeout(timeout or settings.http_timeout_seconds)
        )
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _headers(self) -> dict:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _request(self, method: str, path: str, json: Optional[dict] = None, params: Optional[dict] = None) -> Any:
        try:
            response = self._client.request(method, path, json=json, params=params, headers=self._headers())
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.warning(f"{method} {path}: could not connect ({e})")
            raise TransientNetworkError(f"Could not reach the server: {e}")
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path}: timed out ({e})")
            raise CollaboratorTimeout(f"The server did not answer in time: {e}")
        except httpx.TransportError as e:
            raise CollaboratorError(f"Transport error: {e}", status=0)

        if response.status_code >= 400:
            self._raise_for_error(response)

        try:
            return response.json()
        except ValueError:
            raise MalformedResponse(f"{method} {path} returned a non-JSON body")

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        try:
            detail = response.json().get("detail")
        except (ValueError, AttributeError):
            detail = None

        if isinstance(detail, dict):
            code, message = detail.get("code"), detail.get("message") or "Request failed"
        else:
            code, message = None, str(detail or response.text or "Request failed")

        if response.status_code == 409 and code != ErrorCode.EDIT_CONFLICT.value:
            detail = detail if isinstance(detail, dict) else {}
            raise SeatUnavailable(detail.get("eventId"), payment_id=detail.get("paymentId"))
        if code == ErrorCode.EDIT_CONFLICT.value:
            raise EditConflict(message)
        if code == ErrorCode.VALIDATION_FAILED.value:
            raise EventValidationError(detail.get("errors") or [])
        if code == ErrorCode.PAYMENT_REJECTED.value:
            raise PaymentRejected(message)
        raise CollaboratorError(message, status=response.status_code, remoteCode=code)

    # Auth

    def login(self, email: str, password: str) -> dict:
        body = self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = _pluck(body, "access_token")
        return body

    # Booking flow

    def initiate_booking(self, event_id: int) -> InitiatedBooking:
        body = self._request("POST", "/booking/initiate", json={"eventId": event_id})
        session = _pluck(body, "bookingSession")
        return InitiatedBooking(
            booking_id=_pluck(session, "_id"),
            total_amount=_decimal(_pluck(session, "totalAmount"), "totalAmount"),
            fees=_decimal(_pluck(session, "fees"), "fees"),
            expires_at=_timestamp(session.get("expiresAt"))
        )

    def process_payment(
        self,
        amount: Decimal,
        currency: str,
        payment_method: str = "credit_card",
        payment_details: Optional[dict] = None,
        booking_id: Optional[str] = None,
        event_id: Optional[int] = None
    ) -> PaymentReceipt:
        body = self._request("POST", "/payments/process", json={
            "amount": str(amount),
            "currency": currency,
            "paymentMethod": payment_method,
            "paymentDetails": payment_details or {},
            "bookingId": booking_id,
            "eventId": event_id
        })
        return PaymentReceipt(
            payment_id=_pluck(body, "paymentId"),
            token=_pluck(body, "token"),
            status=_pluck(body, "payment", "status"),
            amount=_decimal(_pluck(body, "payment", "amount"), "amount")
        )

    def confirm_booking(
        self,
        event_id: int,
        payment_id: str,
        booking_id: str,
        payment_method: str = "credit_card",
        payment_token: Optional[str] = None
    ) -> ConfirmedBooking:
        body = self._request("POST", "/booking/confirm", json={
            "eventId": event_id,
            "paymentId": payment_id,
            "bookingId": booking_id,
            "paymentMethod": payment_method,
            "paymentToken": payment_token
        })
        return ConfirmedBooking(
            booking_id=_pluck(body, "booking", "_id"),
            ticket=_pluck(body, "ticket")
        )

    def release_booking(self, booking_id: str) -> None:
        self._request("POST", f"/booking/{booking_id}/cancel")

    # Events

    def get_event(self, event_id: int) -> dict:
        return self._request("GET", f"/events/{event_id}")

    def create_event(self, payload: dict) -> dict:
        return self._request("POST", "/events", json=payload)

    def update_event(self, event_id: int, patch: dict) -> dict:
        return self._request("PUT", f"/events/{event_id}", json=patch)

    # Ticket administration

    def list_admin_tickets(self, status: str = "all", page: int = 1, event_id: Optional[int] = None) -> dict:
        params = {"status": status, "page": page}
        if event_id is not None:
            params["eventId"] = event_id
        body = self._request("GET", "/tickets/admin", params=params)
        _pluck(body, "statistics", "orphanCount")
        return body

    def assign_orphan(self, ticket_id: int, event_id: Optional[int]) -> dict:
        return self._request("POST", f"/tickets/admin/orphans/{ticket_id}/assign", json={"eventId": event_id})

    def cancel_orphan(self, ticket_id: int) -> dict:
        return self._request("POST", f"/tickets/admin/orphans/{ticket_id}/cancel")

from ticketdesk.client.http import TicketDeskClient, InitiatedBooking, PaymentReceipt, ConfirmedBooking
from ticketdesk.client.checkout import BookingSessionStateMachine, EventSnapshot, SessionState
from ticketdesk.client.preferences import Preferences, PreferenceStore

__all__ = [
    "TicketDeskClient",
    "InitiatedBooking",
    "PaymentReceipt",
    "ConfirmedBooking",
    "BookingSessionStateMachine",
    "EventSnapshot",
    "SessionState",
    "Preferences",
    "PreferenceStore"
]

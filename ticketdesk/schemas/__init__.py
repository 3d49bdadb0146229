from ticketdesk.schemas.user import UserCreate, UserLogin, UserResponse, Token
from ticketdesk.schemas.event import EventPayload, EventUpdate, EventResponse
from ticketdesk.schemas.ticket import TicketResponse, AdminTicketList
from ticketdesk.schemas.booking import InitiateRequest, PaymentRequest, ConfirmRequest

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "Token",
    "EventPayload", "EventUpdate", "EventResponse",
    "TicketResponse", "AdminTicketList",
    "InitiateRequest", "PaymentRequest", "ConfirmRequest"
]

from ticketdesk.models.user import User
from ticketdesk.models.event import Event
from ticketdesk.models.ticket import Ticket
from ticketdesk.models.booking import BookingHold
from ticketdesk.models.payment import Payment

__all__ = ["User", "Event", "Ticket", "BookingHold", "Payment"]

from ticketdesk.services.auth import AuthService
from ticketdesk.services.booking import BookingService
from ticketdesk.services.capacity import CapacityValidator
from ticketdesk.services.events import EventService
from ticketdesk.services.lifecycle import TicketLifecycleManager
from ticketdesk.services.orphans import OrphanResolutionWorkflow
from ticketdesk.services.payment import PaymentService

__all__ = [
    "AuthService",
    "BookingService",
    "CapacityValidator",
    "EventService",
    "TicketLifecycleManager",
    "OrphanResolutionWorkflow",
    "PaymentService"
]

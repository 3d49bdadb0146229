from ticketdesk.routers.auth import router as auth_router
from ticketdesk.routers.events import router as events_router
from ticketdesk.routers.booking import router as booking_router
from ticketdesk.routers.payments import router as payments_router
from ticketdesk.routers.admin import router as admin_router
from ticketdesk.routers.tickets import router as tickets_router

__all__ = [
    "auth_router",
    "events_router",
    "booking_router",
    "payments_router",
    "admin_router",
    "tickets_router"
]

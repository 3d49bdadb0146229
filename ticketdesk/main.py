from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
import logging

from ticketdesk import __version__
from ticketdesk.database import init_db
from ticketdesk.config import get_settings
from ticketdesk.errors import TicketDeskError
from ticketdesk.services.scheduler import init_scheduler, shutdown_scheduler
from ticketdesk.middleware.security import setup_security_middleware
from ticketdesk.routers import (
    auth_router,
    events_router,
    booking_router,
    payments_router,
    admin_router,
    tickets_router
)

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Rate limiter setup
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    if settings.scheduler_enabled:
        init_scheduler()
    yield
    if settings.scheduler_enabled:
        shutdown_scheduler()


app = FastAPI(
    title="TicketDesk",
    description="Event ticketing with capacity-checked booking and orphan ticket reconciliation",
    version=__version__,
    lifespan=lifespan
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

setup_security_middleware(app, allowed_hosts=settings.allowed_hosts)

# /tickets/admin must be matched before /tickets/{ticket_id}
app.include_router(auth_router)
app.include_router(events_router)
app.include_router(booking_router)
app.include_router(payments_router)
app.include_router(admin_router)
app.include_router(tickets_router)


@app.exception_handler(TicketDeskError)
async def ticketdesk_error_handler(request: Request, exc: TicketDeskError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}

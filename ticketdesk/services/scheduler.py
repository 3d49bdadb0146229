from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from datetime import datetime
import logging

from ticketdesk.config import get_settings
from ticketdesk.database import SessionLocal
from ticketdesk.services.booking import BookingService
from ticketdesk.services.lifecycle import TicketLifecycleManager

settings = get_settings()
logger = logging.getLogger(__name__)

EXPIRY_SWEEP_JOB_ID = "expiry_sweep"

scheduler = AsyncIOScheduler()

jobstores = {
    'default': SQLAlchemyJobStore(url=settings.database_url)
}


def init_scheduler():
    """Start the scheduler and register the periodic expiry sweep."""
    scheduler.configure(jobstores=jobstores)
    scheduler.start()
    scheduler.add_job(
        run_expiry_sweep,
        'interval',
        minutes=settings.expiry_sweep_minutes,
        id=EXPIRY_SWEEP_JOB_ID,
        replace_existing=True
    )
    logger.info(f"Scheduler started, expiry sweep every {settings.expiry_sweep_minutes} minute(s)")


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler shutdown")


def run_expiry_sweep(now: datetime = None) -> tuple[int, int]:
    """Expire booked tickets of past events and booking sessions past their hold."""
    now = now or datetime.utcnow()
    db = SessionLocal()
    try:
        expired_tickets = TicketLifecycleManager.expire_past_events(db, now)
        expired_holds = BookingService.expire_stale_holds(db, now)
        if expired_tickets or expired_holds:
            logger.info(
                f"Expiry sweep: {expired_tickets} ticket(s), {expired_holds} booking session(s)"
            )
        return expired_tickets, expired_holds
    except Exception as e:
        db.rollback()
        logger.error(f"Expiry sweep failed: {e}")
        raise
    finally:
        db.close()

"""Admin views over tickets: status counts, orphan counts and filtered listing."""

import enum
from dataclasses import dataclass
from typing import Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, Query

from ticketdesk.config import get_settings
from ticketdesk.models.ticket import Ticket, TicketStatus
from ticketdesk.services.lifecycle import TicketLifecycleManager

settings = get_settings()


class TicketFilter(str, enum.Enum):
    ALL = "all"
    BOOKED = "booked"
    USED = "used"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    ORPHAN = "orphan"


@dataclass(frozen=True)
class TicketStatistics:
    status_counts: dict
    orphan_count: int
    total: int


@dataclass(frozen=True)
class TicketPage:
    tickets: list
    page: int
    pages: int
    total: int


def orphan_condition():
    # has() is an EXISTS over the related row, so dangling ids count as unresolved too.
    return or_(~Ticket.event.has(), ~Ticket.user.has())


class OrphanResolutionWorkflow:
    @staticmethod
    def _scoped(db: Session, event_id: Optional[int]) -> Query:
        query = db.query(Ticket)
        if event_id is not None:
            query = query.filter(Ticket.event_id == event_id)
        return query

    @staticmethod
    def statistics(db: Session, event_id: Optional[int] = None) -> TicketStatistics:
        counts_query = db.query(Ticket.status, func.count(Ticket.id))
        if event_id is not None:
            counts_query = counts_query.filter(Ticket.event_id == event_id)
        rows = counts_query.group_by(Ticket.status).all()

        status_counts = {status.value: 0 for status in TicketStatus}
        for status, count in rows:
            status_counts[status.value] = count

        orphan_count = OrphanResolutionWorkflow._scoped(db, event_id).filter(orphan_condition()).count()

        return TicketStatistics(
            status_counts=status_counts,
            orphan_count=orphan_count,
            total=sum(status_counts.values())
        )

    @staticmethod
    def list_tickets(
        db: Session,
        status: TicketFilter = TicketFilter.ALL,
        page: int = 1,
        per_page: Optional[int] = None,
        event_id: Optional[int] = None
    ) -> TicketPage:
        """
        List tickets newest first.
        The orphan filter ignores the status column: a booked orphan is listed under it.
        """
        per_page = per_page or settings.admin_page_size
        page = max(page, 1)
        query = OrphanResolutionWorkflow._scoped(db, event_id)

        if status == TicketFilter.ORPHAN:
            query = query.filter(orphan_condition())
        elif status != TicketFilter.ALL:
            query = query.filter(Ticket.status == TicketStatus(status.value))

        total = query.count()
        tickets = query.order_by(
            Ticket.booking_date.desc(), Ticket.id.desc()
        ).offset((page - 1) * per_page).limit(per_page).all()
        total_pages = (total + per_page - 1) // per_page

        return TicketPage(tickets=tickets, page=page, pages=total_pages, total=total)

    @staticmethod
    def assign(db: Session, ticket_id: int, event_id: Optional[int]) -> Ticket:
        return TicketLifecycleManager.assign(db, ticket_id, event_id)

    @staticmethod
    def cancel(db: Session, ticket_id: int) -> Ticket:
        return TicketLifecycleManager.cancel_orphan(db, ticket_id)

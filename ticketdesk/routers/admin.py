from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from ticketdesk.database import get_db
from ticketdesk.models.user import User
from ticketdesk.schemas.ticket import (
    AdminTicketList, AssignRequest, Pagination, TicketResponse, TicketStatisticsResponse
)
from ticketdesk.services.auth import get_current_admin
from ticketdesk.services.orphans import OrphanResolutionWorkflow, TicketFilter

router = APIRouter(prefix="/tickets/admin", tags=["admin"])


@router.get("", response_model=AdminTicketList)
async def admin_tickets(
    ticket_status: TicketFilter = Query(TicketFilter.ALL, alias="status"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, le=100),
    event_id: Optional[int] = Query(None, alias="eventId"),
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    result = OrphanResolutionWorkflow.list_tickets(
        db, status=ticket_status, page=page, per_page=limit, event_id=event_id
    )
    stats = OrphanResolutionWorkflow.statistics(db, event_id=event_id)

    return AdminTicketList(
        tickets=[TicketResponse.from_model(ticket) for ticket in result.tickets],
        statistics=TicketStatisticsResponse(
            status_counts=stats.status_counts,
            orphan_count=stats.orphan_count,
            total=stats.total
        ),
        pagination=Pagination(current=result.page, pages=result.pages, total=result.total)
    )


@router.post("/orphans/{ticket_id}/assign", response_model=TicketResponse)
async def assign_orphan(
    ticket_id: int,
    assignment: Optional[AssignRequest] = None,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    event_id = assignment.event_id if assignment else None
    ticket = OrphanResolutionWorkflow.assign(db, ticket_id, event_id)
    return TicketResponse.from_model(ticket)


@router.post("/orphans/{ticket_id}/cancel", response_model=TicketResponse)
async def cancel_orphan(
    ticket_id: int,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    ticket = OrphanResolutionWorkflow.cancel(db, ticket_id)
    return TicketResponse.from_model(ticket)

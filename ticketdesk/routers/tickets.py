from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional

from ticketdesk.database import get_db
from ticketdesk.models.ticket import Ticket, TicketStatus
from ticketdesk.models.user import User
from ticketdesk.schemas.ticket import TicketResponse, TicketList, Pagination
from ticketdesk.services.auth import get_current_user_required, get_current_admin
from ticketdesk.services.lifecycle import TicketLifecycleManager

router = APIRouter(prefix="/tickets", tags=["tickets"])


def _owned_ticket(db: Session, ticket_id: int, user: User) -> Ticket:
    ticket = TicketLifecycleManager.get_ticket(db, ticket_id)
    if ticket.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Not your ticket")
    return ticket


@router.get("/my-tickets", response_model=TicketList)
async def my_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    ticket_status: Optional[TicketStatus] = Query(None, alias="status"),
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    query = db.query(Ticket).filter(Ticket.user_id == user.id)
    if ticket_status:
        query = query.filter(Ticket.status == ticket_status)

    total = query.count()
    tickets = query.order_by(
        Ticket.booking_date.desc(), Ticket.id.desc()
    ).offset((page - 1) * limit).limit(limit).all()
    total_pages = (total + limit - 1) // limit

    return TicketList(
        tickets=[TicketResponse.from_model(ticket) for ticket in tickets],
        pagination=Pagination(current=page, pages=total_pages, total=total)
    )


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    return TicketResponse.from_model(_owned_ticket(db, ticket_id, user))


@router.put("/{ticket_id}/cancel", response_model=TicketResponse)
async def cancel_ticket(
    ticket_id: int,
    user: User = Depends(get_current_user_required),
    db: Session = Depends(get_db)
):
    _owned_ticket(db, ticket_id, user)
    ticket = TicketLifecycleManager.cancel(db, ticket_id)
    return TicketResponse.from_model(ticket)


@router.post("/{ticket_id}/checkin", response_model=TicketResponse)
async def check_in_ticket(
    ticket_id: int,
    admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    ticket = TicketLifecycleManager.check_in(db, ticket_id, admin)
    return TicketResponse.from_model(ticket)

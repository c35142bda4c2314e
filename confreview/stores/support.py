"""Support tickets handled by technicians."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from confreview.db.models import SupportTicket, User
from confreview.log import get_logger
from confreview.workflow.errors import NotFound, ValidationError

logger = get_logger(__name__)

PRIORITIES = ("low", "medium", "high")
STATUSES = ("open", "in_progress", "resolved", "closed")


def _ticket_dict(t: SupportTicket) -> Dict[str, Any]:
    return {
        "id": t.id,
        "title": t.title,
        "description": t.description,
        "priority": t.priority,
        "status": t.status,
        "userId": t.user_id,
        "assignedTo": t.assigned_to,
        "createdAt": t.created_at,
        "updatedAt": t.updated_at,
    }


def _get(session: Session, ticket_id: int) -> SupportTicket:
    ticket = session.get(SupportTicket, ticket_id)
    if ticket is None:
        raise NotFound("Support ticket not found")
    return ticket


def list_tickets(session: Session) -> List[Dict[str, Any]]:
    tickets = session.exec(select(SupportTicket).order_by(SupportTicket.created_at.desc())).all()
    return [_ticket_dict(t) for t in tickets]


def create_ticket(
    session: Session,
    title: str,
    description: str,
    priority: Optional[str] = None,
    status: Optional[str] = None,
    user_id: Optional[int] = None,
    assigned_to: Optional[int] = None,
) -> Dict[str, Any]:
    if not title or not description:
        raise ValidationError("Title and description are required")
    priority = priority or "medium"
    status = status or "open"
    if priority not in PRIORITIES:
        raise ValidationError("Invalid priority")
    if status not in STATUSES:
        raise ValidationError("Invalid status")

    ticket = SupportTicket(
        title=title,
        description=description,
        priority=priority,
        status=status,
        user_id=user_id,
        assigned_to=assigned_to,
    )
    session.add(ticket)
    session.commit()
    session.refresh(ticket)
    logger.info("[support] ticket created id=%s priority=%s", ticket.id, priority)
    return {"message": "Support ticket created successfully", "ticketId": ticket.id}


def assign_technician(session: Session, ticket_id: int, technician_id: int) -> Dict[str, Any]:
    if not ticket_id or not technician_id:
        raise ValidationError("Ticket ID and Technician ID are required")
    tech = session.get(User, technician_id)
    if tech is None or tech.role != "technician":
        raise NotFound("Technician not found")
    ticket = _get(session, ticket_id)
    ticket.assigned_to = technician_id
    ticket.updated_at = datetime.now().isoformat()
    session.add(ticket)
    session.commit()
    return {"message": "Technician assigned successfully"}


def update_status(session: Session, ticket_id: int, status: str) -> Dict[str, Any]:
    if not ticket_id or not status:
        raise ValidationError("Ticket ID and status are required")
    if status not in STATUSES:
        raise ValidationError("Invalid status")
    ticket = _get(session, ticket_id)
    ticket.status = status
    ticket.updated_at = datetime.now().isoformat()
    session.add(ticket)
    session.commit()
    return {"message": "Ticket status updated successfully"}


def delete_ticket(session: Session, ticket_id: int) -> Dict[str, Any]:
    session.delete(_get(session, ticket_id))
    session.commit()
    return {"message": "Support ticket deleted successfully"}

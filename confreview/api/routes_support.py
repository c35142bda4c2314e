"""
技术支持工单 API。
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from confreview.api.routes_auth import require_roles
from confreview.api.schemas import AssignTechnicianRequest, CreateTicketRequest, TicketStatusRequest
from confreview.db import get_session
from confreview.stores import support, users

router = APIRouter(prefix="/support", tags=["support"])

require_support_admin = require_roles("admin", "support_admin")
require_support_staff = require_roles("admin", "support_admin", "technician")


@router.get("/tickets")
def list_tickets(
    _staff: Dict[str, Any] = Depends(require_support_admin),
    session: Session = Depends(get_session),
) -> list:
    return support.list_tickets(session)


@router.post("/tickets", status_code=201)
def create_ticket(
    body: CreateTicketRequest,
    _staff: Dict[str, Any] = Depends(require_support_admin),
    session: Session = Depends(get_session),
) -> dict:
    return support.create_ticket(
        session,
        title=body.title,
        description=body.description,
        priority=body.priority,
        status=body.status,
        user_id=body.user_id,
        assigned_to=body.assigned_to,
    )


@router.post("/tickets/assign")
def assign_technician(
    body: AssignTechnicianRequest,
    _staff: Dict[str, Any] = Depends(require_support_admin),
    session: Session = Depends(get_session),
) -> dict:
    return support.assign_technician(session, body.ticket_id, body.technician_id)


@router.put("/tickets/status")
def update_ticket_status(
    body: TicketStatusRequest,
    _staff: Dict[str, Any] = Depends(require_support_staff),
    session: Session = Depends(get_session),
) -> dict:
    return support.update_status(session, body.ticket_id, body.status)


@router.delete("/tickets/{ticket_id}")
def delete_ticket(
    ticket_id: int,
    _staff: Dict[str, Any] = Depends(require_support_admin),
    session: Session = Depends(get_session),
) -> dict:
    return support.delete_ticket(session, ticket_id)


@router.get("/technicians")
def list_technicians(
    _staff: Dict[str, Any] = Depends(require_support_admin),
    session: Session = Depends(get_session),
) -> list:
    return users.list_technicians(session)

from typing import Optional, Union

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from helpdesk.core import comments as comment_service
from helpdesk.core import tickets as ticket_service
from helpdesk.core.auth import get_current_actor, require_action
from helpdesk.core.policy import Action, Actor
from helpdesk.db.session import get_db

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    assigned_to: Optional[Union[int, str]] = Field(None, alias="assignedTo")
    due_date: Optional[str] = Field(None, alias="dueDate")

    class Config:
        populate_by_name = True


class TicketUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None


class AssignPayload(BaseModel):
    assigned_to: Optional[Union[int, str]] = Field(None, alias="assignedTo")

    class Config:
        populate_by_name = True


class CommentPayload(BaseModel):
    content: Optional[str] = None


@router.post("", status_code=status.HTTP_201_CREATED)
def create_ticket(
    payload: TicketCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Create a ticket owned by the current user."""
    ticket = ticket_service.create_ticket(
        db,
        actor,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
        status=payload.status,
        assigned_to=payload.assigned_to,
        due_date=payload.due_date,
    )
    return {
        "message": "Ticket successfully created",
        "ticket": ticket_service.serialize_ticket(ticket),
    }


@router.get("")
def list_tickets(
    db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)
):
    """List tickets visible to the current user's role."""
    rows = ticket_service.list_tickets(db, actor)
    return {
        "message": "Fetched tickets",
        "count": len(rows),
        "tickets": [ticket_service.serialize_ticket(r) for r in rows],
    }


@router.get("/{ticket_id}")
def get_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    ticket = ticket_service.get_ticket(db, actor, ticket_id)
    return {
        "message": "Ticket retrieved successfully",
        "ticket": ticket_service.serialize_ticket(ticket),
    }


@router.patch("/{ticket_id}")
def update_ticket(
    ticket_id: str,
    payload: TicketUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Creator, assigned technician or admin may update the supplied fields."""
    ticket = ticket_service.update_ticket(
        db, actor, ticket_id, payload.model_dump(exclude_none=True)
    )
    return {
        "message": "Ticket updated successfully",
        "ticket": ticket_service.serialize_ticket(ticket),
    }


@router.delete("/{ticket_id}")
def delete_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    deleted_id = ticket_service.delete_ticket(db, actor, ticket_id)
    return {"message": "Ticket deleted successfully", "id": deleted_id}


@router.patch("/{ticket_id}/assign")
def assign_ticket(
    ticket_id: str,
    payload: AssignPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_action(Action.ASSIGN_TICKET)),
):
    """Admins assign to anyone, technicians only to themselves."""
    ticket = ticket_service.assign_ticket(db, actor, ticket_id, payload.assigned_to)
    return {
        "message": "Ticket assigned successfully",
        "ticket": ticket_service.serialize_ticket(ticket),
    }


@router.patch("/{ticket_id}/reopen")
def reopen_ticket(
    ticket_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    ticket = ticket_service.reopen_ticket(db, actor, ticket_id)
    return {
        "message": "Ticket reopened successfully",
        "ticket": ticket_service.serialize_ticket(ticket),
    }


@router.post("/{ticket_id}/comments", status_code=status.HTTP_201_CREATED)
def create_comment(
    ticket_id: str,
    payload: CommentPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    comment = comment_service.create_comment(db, actor, ticket_id, payload.content)
    return {
        "message": "Comment added successfully",
        "comment": comment_service.serialize_comment(comment),
    }


@router.get("/{ticket_id}/comments")
def list_comments(
    ticket_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    rows = comment_service.list_comments(db, ticket_id)
    return {
        "message": "Fetched comments",
        "count": len(rows),
        "comments": [comment_service.serialize_comment(c) for c in rows],
    }

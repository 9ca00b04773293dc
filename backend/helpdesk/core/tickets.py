"""Ticket state machine.

Each mutating operation follows the same two-step protocol: validate and
authorize using rows already loaded, commit the mutation, then append one
activity entry with :func:`helpdesk.core.audit.record`. A denied or invalid
request returns before anything is written.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from helpdesk.core import audit
from helpdesk.core.enums import (
    PRIORITY_VALUES,
    STATUS_VALUES,
    ActivityAction,
    Priority,
    Role,
    Status,
)
from helpdesk.core.errors import ConflictError, NotFoundError, ValidationError, parse_id
from helpdesk.core.policy import Action, Actor, decide, decide_assignment, enforce
from helpdesk.models.models import Ticket, User

LOG = logging.getLogger(__name__)

# Status changes reachable through a plain update. Assign and reopen have
# their own rules.
TRANSITIONS = {
    Status.OPEN.value: {Status.IN_PROGRESS.value, Status.CLOSED.value},
    Status.IN_PROGRESS.value: {Status.OPEN.value, Status.CLOSED.value},
    Status.CLOSED.value: {Status.REOPENED.value},
    Status.REOPENED.value: {Status.IN_PROGRESS.value, Status.CLOSED.value},
}

UPDATABLE_FIELDS = ("title", "description", "status", "priority")


def _required_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _choice(value: Any, allowed, label: str) -> str:
    value = value.value if hasattr(value, "value") else value
    if value not in allowed:
        raise ValidationError(f"Invalid {label}: must be one of {', '.join(allowed)}")
    return value


def parse_due_date(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError("Invalid due date format")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError("Invalid due date format")


def can_transition(current: str, target: str) -> bool:
    return current == target or target in TRANSITIONS.get(current, set())


def load_ticket(db: Session, ticket_id) -> Ticket:
    """Validate the id format, then fetch the ticket or raise NotFoundError."""
    tid = parse_id(ticket_id, "ticket")
    ticket = db.query(Ticket).filter(Ticket.id == tid).first()
    if ticket is None:
        raise NotFoundError("Ticket not found")
    return ticket


def _load_user(db: Session, user_id, label: str, missing: str) -> User:
    uid = parse_id(user_id, label)
    user = db.query(User).filter(User.id == uid).first()
    if user is None:
        raise NotFoundError(missing)
    return user


def create_ticket(
    db: Session,
    actor: Actor,
    *,
    title: Any,
    description: Any,
    priority: Any = None,
    status: Any = None,
    assigned_to: Any = None,
    due_date: Any = None,
) -> Ticket:
    """Create a ticket owned by ``actor``."""
    title = _required_text(title)
    description = _required_text(description)
    if not title or not description:
        raise ValidationError("Title and description are required")

    priority = _choice(priority or Priority.MEDIUM, PRIORITY_VALUES, "priority")
    status = _choice(status or Status.OPEN, STATUS_VALUES, "status")
    due = parse_due_date(due_date)

    assignee = None
    if assigned_to is not None:
        assignee = _load_user(
            db, assigned_to, "assignedTo user", "Assigned user not found"
        )

    ticket = Ticket(
        title=title,
        description=description,
        priority=priority,
        status=status,
        assigned_to=assignee.id if assignee else None,
        due_date=due,
        created_by=actor.id,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)

    audit.record(
        db,
        ticket_id=ticket.id,
        action=ActivityAction.CREATED,
        performed_by=actor.id,
        metadata={
            "priority": ticket.priority,
            "status": ticket.status,
            "assignedTo": ticket.assigned_to,
        },
    )
    LOG.info("ticket %s created by user %s", ticket.id, actor.id)
    return ticket


def list_tickets(db: Session, actor: Actor) -> List[Ticket]:
    """Tickets visible to ``actor``: admins see all, technicians their own and
    assigned tickets, clients only their own."""
    query = db.query(Ticket)
    if actor.role == Role.ADMIN:
        pass
    elif actor.role == Role.TECHNICIAN:
        query = query.filter(
            or_(Ticket.created_by == actor.id, Ticket.assigned_to == actor.id)
        )
    else:
        query = query.filter(Ticket.created_by == actor.id)
    return query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()


def get_ticket(db: Session, actor: Actor, ticket_id) -> Ticket:
    ticket = load_ticket(db, ticket_id)
    enforce(
        decide(actor, Action.VIEW_TICKET, ticket.created_by, ticket.assigned_to),
        "Unauthorized to view this ticket",
        actor=actor,
        action=Action.VIEW_TICKET,
    )
    return ticket


def update_ticket(
    db: Session, actor: Actor, ticket_id, changes: Dict[str, Any]
) -> Ticket:
    """Apply the supplied fields only. ``created_by`` and ``assigned_to`` are
    never touched here."""
    ticket = load_ticket(db, ticket_id)
    enforce(
        decide(actor, Action.UPDATE_TICKET, ticket.created_by, ticket.assigned_to),
        "Not authorized to update this ticket",
        actor=actor,
        action=Action.UPDATE_TICKET,
    )

    updates: Dict[str, Any] = {}
    for field in ("title", "description"):
        if changes.get(field) is not None:
            value = _required_text(changes[field])
            if not value:
                raise ValidationError(f"{field.capitalize()} cannot be empty")
            updates[field] = value
    if changes.get("priority") is not None:
        updates["priority"] = _choice(changes["priority"], PRIORITY_VALUES, "priority")
    if changes.get("status") is not None:
        target = _choice(changes["status"], STATUS_VALUES, "status")
        if not can_transition(ticket.status, target):
            raise ConflictError(
                f"Cannot change status from '{ticket.status}' to '{target}'"
            )
        updates["status"] = target

    diff = {}
    for field, value in updates.items():
        old = getattr(ticket, field)
        if old != value:
            diff[field] = {"from": old, "to": value}
            setattr(ticket, field, value)

    if not diff:
        return ticket

    db.commit()
    db.refresh(ticket)
    audit.record(
        db,
        ticket_id=ticket.id,
        action=ActivityAction.UPDATED,
        performed_by=actor.id,
        metadata=diff,
    )
    return ticket


def assign_ticket(db: Session, actor: Actor, ticket_id, assignee_id) -> Ticket:
    """Assign the ticket and move it to in_progress.

    The target user must exist (NotFoundError) before the self-assignment
    restriction is applied (AuthorizationError).
    """
    tid = parse_id(ticket_id, "ticket")
    uid = parse_id(assignee_id, "user")

    ticket = load_ticket(db, tid)
    target = _load_user(db, uid, "user", "User to assign not found")
    enforce(
        decide_assignment(actor, target.id),
        actor=actor,
        action=Action.ASSIGN_TICKET,
    )

    previous = {"assignedTo": ticket.assigned_to, "status": ticket.status}
    ticket.assigned_to = target.id
    ticket.status = Status.IN_PROGRESS.value
    db.commit()
    db.refresh(ticket)

    audit.record(
        db,
        ticket_id=ticket.id,
        action=ActivityAction.ASSIGNED,
        performed_by=actor.id,
        metadata={
            "assignedTo": target.id,
            "previousAssignee": previous["assignedTo"],
            "previousStatus": previous["status"],
            "status": ticket.status,
        },
    )
    return ticket


def reopen_ticket(db: Session, actor: Actor, ticket_id) -> Ticket:
    """Set status to reopened. Reopening twice is a ConflictError."""
    ticket = load_ticket(db, ticket_id)
    enforce(
        decide(actor, Action.REOPEN_TICKET, ticket.created_by, ticket.assigned_to),
        "Not authorized to reopen this ticket",
        actor=actor,
        action=Action.REOPEN_TICKET,
    )
    if ticket.status == Status.REOPENED.value:
        raise ConflictError("Ticket is already reopened")

    previous = ticket.status
    ticket.status = Status.REOPENED.value
    db.commit()
    db.refresh(ticket)

    audit.record(
        db,
        ticket_id=ticket.id,
        action=ActivityAction.REOPENED,
        performed_by=actor.id,
        metadata={"from": previous, "status": ticket.status},
    )
    return ticket


def delete_ticket(db: Session, actor: Actor, ticket_id) -> int:
    ticket = load_ticket(db, ticket_id)
    enforce(
        decide(actor, Action.DELETE_TICKET, ticket.created_by, ticket.assigned_to),
        "Not authorized to delete this ticket",
        actor=actor,
        action=Action.DELETE_TICKET,
    )

    deleted_id = ticket.id
    snapshot = {
        "title": ticket.title,
        "status": ticket.status,
        "createdBy": ticket.created_by,
        "assignedTo": ticket.assigned_to,
    }
    db.delete(ticket)
    db.commit()

    audit.record(
        db,
        ticket_id=deleted_id,
        action=ActivityAction.DELETED,
        performed_by=actor.id,
        metadata=snapshot,
    )
    return deleted_id


def _user_summary(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email, "role": user.role}


def serialize_ticket(ticket: Ticket) -> dict:
    return {
        "id": ticket.id,
        "title": ticket.title,
        "description": ticket.description,
        "priority": ticket.priority,
        "status": ticket.status,
        "created_by": ticket.created_by,
        "assigned_to": ticket.assigned_to,
        "creator": _user_summary(ticket.creator),
        "assignee": _user_summary(ticket.assignee),
        "due_date": ticket.due_date.isoformat() if ticket.due_date is not None else None,
        "created_at": (
            ticket.created_at.isoformat() if ticket.created_at is not None else None
        ),
        "updated_at": (
            ticket.updated_at.isoformat() if ticket.updated_at is not None else None
        ),
    }

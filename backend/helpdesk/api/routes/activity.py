from typing import Literal

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from helpdesk.core import audit
from helpdesk.core.auth import require_action
from helpdesk.core.errors import parse_id
from helpdesk.core.policy import Action, Actor
from helpdesk.db.session import get_db

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("/ticket/{ticket_id}")
def get_logs_by_ticket(
    ticket_id: str,
    order: Literal["desc", "asc"] = "desc",
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_action(Action.VIEW_ACTIVITY)),
):
    """Activity for a ticket, newest first unless ``order=asc``.

    Entries of deleted tickets remain readable.
    """
    tid = parse_id(ticket_id, "ticket")
    rows = audit.list_for_ticket(db, tid, newest_first=(order == "desc"))
    return {
        "message": "Fetched activity",
        "count": len(rows),
        "logs": [audit.serialize_entry(r) for r in rows],
    }

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from helpdesk.core.enums import ACTIVITY_ACTION_VALUES, ActivityAction
from helpdesk.models.models import ActivityLog

LOG = logging.getLogger(__name__)


def record(
    db: Session,
    *,
    ticket_id: Optional[int],
    action: ActivityAction,
    performed_by: int,
    metadata: Optional[Dict[str, Any]] = None,
) -> ActivityLog:
    """Append-only write of an activity log entry.

    Callers commit their mutation first and then call this. The two writes
    are not atomic: if this one fails the mutation stays committed, so the
    failure is logged as a data-quality alarm and re-raised to fail the
    request. There is no update or delete counterpart.
    """
    value = action.value if isinstance(action, ActivityAction) else action
    if value not in ACTIVITY_ACTION_VALUES:
        raise ValueError(f"Unknown activity action: {action!r}")

    entry = ActivityLog(
        ticket_id=ticket_id,
        action=value,
        performed_by=performed_by,
        metadata_json=metadata or {},
    )
    db.add(entry)
    try:
        db.commit()
        db.refresh(entry)
    except Exception:
        db.rollback()
        LOG.error(
            "AUDIT WRITE FAILED after committed mutation: action=%s ticket_id=%s performed_by=%s",
            value,
            ticket_id,
            performed_by,
            exc_info=True,
        )
        raise
    return entry


def list_for_ticket(
    db: Session, ticket_id: int, newest_first: bool = True
) -> List[ActivityLog]:
    query = db.query(ActivityLog).filter(ActivityLog.ticket_id == ticket_id)
    if newest_first:
        query = query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    else:
        query = query.order_by(ActivityLog.created_at.asc(), ActivityLog.id.asc())
    return query.all()


def serialize_entry(entry: ActivityLog) -> dict:
    # None once the performing user has been deleted.
    performer = entry.performer
    return {
        "id": entry.id,
        "ticket_id": entry.ticket_id,
        "action": entry.action,
        "performed_by": entry.performed_by,
        "performer": (
            {"id": performer.id, "name": performer.name, "role": performer.role}
            if performer is not None
            else None
        ),
        "metadata": entry.metadata_json or {},
        "created_at": (
            entry.created_at.isoformat() if entry.created_at is not None else None
        ),
    }

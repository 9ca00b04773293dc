from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from helpdesk.api.routes.tickets import CommentPayload
from helpdesk.core import comments as comment_service
from helpdesk.core.auth import get_current_actor
from helpdesk.core.policy import Actor
from helpdesk.db.session import get_db

router = APIRouter(prefix="/comments", tags=["comments"])


@router.put("/{comment_id}")
def update_comment(
    comment_id: str,
    payload: CommentPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Author or admin only."""
    comment = comment_service.update_comment(db, actor, comment_id, payload.content)
    return {
        "message": "Comment updated successfully",
        "comment": comment_service.serialize_comment(comment),
    }


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    deleted_id = comment_service.delete_comment(db, actor, comment_id)
    return {"message": "Comment deleted successfully", "id": deleted_id}

from typing import Any, List

from sqlalchemy.orm import Session

from helpdesk.core import audit
from helpdesk.core.enums import ActivityAction
from helpdesk.core.errors import NotFoundError, ValidationError, parse_id
from helpdesk.core.policy import Action, Actor, decide, enforce
from helpdesk.core.tickets import load_ticket
from helpdesk.models.models import Comment


def _content(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Content is required")
    return value.strip()


def load_comment(db: Session, comment_id) -> Comment:
    cid = parse_id(comment_id, "comment")
    comment = db.query(Comment).filter(Comment.id == cid).first()
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def create_comment(db: Session, actor: Actor, ticket_id, content: Any) -> Comment:
    """Any authenticated user may comment on an existing ticket."""
    content = _content(content)
    ticket = load_ticket(db, ticket_id)

    comment = Comment(content=content, ticket_id=ticket.id, user_id=actor.id)
    db.add(comment)
    db.commit()
    db.refresh(comment)

    audit.record(
        db,
        ticket_id=ticket.id,
        action=ActivityAction.COMMENT_ADDED,
        performed_by=actor.id,
        metadata={"commentId": comment.id, "content": comment.content},
    )
    return comment


def list_comments(db: Session, ticket_id) -> List[Comment]:
    """Comments on a ticket, oldest first."""
    ticket = load_ticket(db, ticket_id)
    return (
        db.query(Comment)
        .filter(Comment.ticket_id == ticket.id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .all()
    )


def update_comment(db: Session, actor: Actor, comment_id, content: Any) -> Comment:
    comment = load_comment(db, comment_id)
    enforce(
        decide(actor, Action.EDIT_COMMENT, owner_id=comment.user_id),
        "Not authorized to update this comment",
        actor=actor,
        action=Action.EDIT_COMMENT,
    )
    content = _content(content)

    previous = comment.content
    comment.content = content
    db.commit()
    db.refresh(comment)

    audit.record(
        db,
        ticket_id=comment.ticket_id,
        action=ActivityAction.COMMENT_EDITED,
        performed_by=actor.id,
        metadata={"commentId": comment.id, "from": previous, "content": comment.content},
    )
    return comment


def delete_comment(db: Session, actor: Actor, comment_id) -> int:
    comment = load_comment(db, comment_id)
    enforce(
        decide(actor, Action.DELETE_COMMENT, owner_id=comment.user_id),
        "Not authorized to delete this comment",
        actor=actor,
        action=Action.DELETE_COMMENT,
    )

    deleted_id, ticket_id = comment.id, comment.ticket_id
    db.delete(comment)
    db.commit()

    audit.record(
        db,
        ticket_id=ticket_id,
        action=ActivityAction.COMMENT_DELETED,
        performed_by=actor.id,
        metadata={"commentId": deleted_id},
    )
    return deleted_id


def serialize_comment(comment: Comment) -> dict:
    author = comment.author
    return {
        "id": comment.id,
        "ticket_id": comment.ticket_id,
        "content": comment.content,
        "user": (
            {"id": author.id, "name": author.name, "email": author.email}
            if author is not None
            else {"id": comment.user_id}
        ),
        "created_at": (
            comment.created_at.isoformat() if comment.created_at is not None else None
        ),
        "updated_at": (
            comment.updated_at.isoformat() if comment.updated_at is not None else None
        ),
    }

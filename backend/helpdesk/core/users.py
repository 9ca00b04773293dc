"""User directory: registration and the admin-only account operations."""

import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from helpdesk.core import audit
from helpdesk.core.auth import get_password_hash, require_password
from helpdesk.core.enums import ROLE_VALUES, ActivityAction, Role
from helpdesk.core.errors import NotFoundError, ValidationError, parse_id
from helpdesk.core.policy import Action, Actor, decide, enforce
from helpdesk.models.models import User

LOG = logging.getLogger(__name__)


def _role(value: Any) -> str:
    value = value.value if isinstance(value, Role) else value
    if value not in ROLE_VALUES:
        raise ValidationError(
            f"Valid role is required ({', '.join(ROLE_VALUES)})"
        )
    return value


def load_user(db: Session, user_id) -> User:
    uid = parse_id(user_id, "user")
    user = db.query(User).filter(User.id == uid).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def create_user(
    db: Session,
    *,
    name: Any,
    email: Any,
    password: Optional[str],
    role: Any = Role.CLIENT,
    created_by: Optional[Actor] = None,
) -> User:
    """Create an account. Self-registration passes no ``created_by`` and is
    recorded as performed by the new user."""
    name = name.strip() if isinstance(name, str) else ""
    email = email.strip().lower() if isinstance(email, str) else ""
    if not name or not email or "@" not in email:
        raise ValidationError("Name and a valid email are required")
    require_password(password)
    role = _role(role)

    if db.query(User).filter(User.email == email).first() is not None:
        raise ValidationError("User already exists")

    user = User(
        name=name,
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    audit.record(
        db,
        ticket_id=None,
        action=ActivityAction.USER_CREATED,
        performed_by=created_by.id if created_by else user.id,
        metadata={"userId": user.id, "email": user.email, "role": user.role},
    )
    return user


def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()


def update_user_role(db: Session, actor: Actor, user_id, role: Any) -> User:
    uid = parse_id(user_id, "user")
    user = load_user(db, uid)
    enforce(
        decide(actor, Action.CHANGE_ROLE, owner_id=user.id),
        "Cannot change your own role",
        actor=actor,
        action=Action.CHANGE_ROLE,
    )
    role = _role(role)

    previous = user.role
    user.role = role
    db.commit()
    db.refresh(user)

    audit.record(
        db,
        ticket_id=None,
        action=ActivityAction.ROLE_UPDATED,
        performed_by=actor.id,
        metadata={"userId": user.id, "from": previous, "to": user.role},
    )
    LOG.info("user %s role changed %s -> %s by %s", user.id, previous, role, actor.id)
    return user


def delete_user(db: Session, actor: Actor, user_id) -> int:
    user = load_user(db, user_id)
    enforce(
        decide(actor, Action.DELETE_USER, owner_id=user.id),
        "Cannot delete your own account",
        actor=actor,
        action=Action.DELETE_USER,
    )

    deleted_id, email = user.id, user.email
    db.delete(user)
    db.commit()

    audit.record(
        db,
        ticket_id=None,
        action=ActivityAction.USER_DELETED,
        performed_by=actor.id,
        metadata={"userId": deleted_id, "email": email},
    )
    return deleted_id


def serialize_user(user: User) -> dict:
    """Public representation; the credential hash is never included."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "created_at": user.created_at.isoformat() if user.created_at is not None else None,
    }

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from helpdesk.core.config import get_settings
from helpdesk.core.errors import AuthenticationError, ValidationError
from helpdesk.core.policy import Action, Actor, decide, enforce
from helpdesk.db.session import get_db
from helpdesk.models.models import User

LOG = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="users/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password for storing."""
    return pwd_context.hash(password)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Authenticate a user by email and password."""
    user = db.query(User).filter(User.email == (email or "").strip().lower()).first()
    if not user:
        return None
    if not verify_password(password or "", user.hashed_password):
        return None
    return user


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """Create JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
    )
    return encoded_jwt


def create_token_for_user(user: User) -> str:
    return create_access_token({"sub": user.id, "role": user.role})


def decode_token(token: str) -> dict:
    """Return the token claims or raise AuthenticationError."""
    settings = get_settings()
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except JWTError:
        raise AuthenticationError("Token is invalid or expired")

    sub = payload.get("sub")
    if sub is None or not str(sub).isdigit():
        raise AuthenticationError("Token is invalid or expired")
    return payload


def get_current_actor(
    token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)
) -> Actor:
    """Resolve the acting identity from the bearer token.

    With ``TRUST_TOKEN_ROLE`` the role claim is used as-is; otherwise the user
    is reloaded so role changes apply immediately.
    """
    if not token:
        raise AuthenticationError("No token provided")

    payload = decode_token(token)
    actor_id = int(payload["sub"])

    if get_settings().TRUST_TOKEN_ROLE:
        role = payload.get("role")
    else:
        user = db.query(User).filter(User.id == actor_id).first()
        if user is None:
            raise AuthenticationError("User not found")
        role = user.role

    try:
        return Actor(id=actor_id, role=role)
    except ValueError:
        raise AuthenticationError("Token is invalid or expired")


def require_action(action: Action):
    """Dependency factory gating a route on a coarse, resource-free capability."""

    def action_checker(
        request: Request, actor: Actor = Depends(get_current_actor)
    ) -> Actor:
        decision = decide(actor, action)
        if not decision.allowed:
            LOG.warning(
                "Access denied: user %s with role '%s' denied %s on %s",
                actor.id,
                actor.role.value,
                action.value,
                request.url.path,
            )
        enforce(decision)
        return actor

    return action_checker


def require_password(password: Optional[str]) -> str:
    if not password or len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")
    return password

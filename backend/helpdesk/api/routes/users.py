from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from helpdesk.core import users as user_service
from helpdesk.core.auth import (
    authenticate_user,
    create_token_for_user,
    get_current_actor,
    require_action,
)
from helpdesk.core.enums import Role
from helpdesk.core.errors import ValidationError
from helpdesk.core.policy import Action, Actor
from helpdesk.db.session import get_db

router = APIRouter(prefix="/users", tags=["users"])


class RegisterPayload(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginPayload(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class CreateUserPayload(RegisterPayload):
    role: Optional[str] = None


class RolePayload(BaseModel):
    role: Optional[str] = None


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegisterPayload, db: Session = Depends(get_db)):
    """Public self-registration. New accounts are always clients."""
    user = user_service.create_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=Role.CLIENT,
    )
    return {
        "message": "User registered successfully",
        "user": user_service.serialize_user(user),
        "token": create_token_for_user(user),
    }


@router.post("/login")
def login(payload: LoginPayload, db: Session = Depends(get_db)):
    """Exchange email and password for a bearer token."""
    user = authenticate_user(db, payload.email, payload.password)
    if not user:
        raise ValidationError("Invalid credentials")
    return {
        "message": "Login successful",
        "user": user_service.serialize_user(user),
        "token": create_token_for_user(user),
        "token_type": "bearer",
    }


@router.get("/profile")
def get_profile(
    db: Session = Depends(get_db), actor: Actor = Depends(get_current_actor)
):
    """Return the caller's own record."""
    user = user_service.load_user(db, actor.id)
    return {
        "message": "Profile retrieved successfully",
        "user": user_service.serialize_user(user),
    }


@router.get("")
def list_users(
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_action(Action.LIST_USERS)),
):
    users = user_service.list_users(db)
    return {
        "message": "Users retrieved successfully",
        "count": len(users),
        "users": [user_service.serialize_user(u) for u in users],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: CreateUserPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_action(Action.CREATE_USER)),
):
    user = user_service.create_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=payload.role or Role.CLIENT,
        created_by=actor,
    )
    return {
        "message": "User created successfully",
        "user": user_service.serialize_user(user),
    }


@router.get("/{user_id}")
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_action(Action.VIEW_USER)),
):
    user = user_service.load_user(db, user_id)
    return {
        "message": "User retrieved successfully",
        "user": user_service.serialize_user(user),
    }


@router.patch("/{user_id}/role")
def update_user_role(
    user_id: str,
    payload: RolePayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_action(Action.CHANGE_ROLE)),
):
    """Admin only. An admin cannot change their own role."""
    user = user_service.update_user_role(db, actor, user_id, payload.role)
    return {
        "message": "User role updated successfully",
        "user": user_service.serialize_user(user),
    }


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_action(Action.DELETE_USER)),
):
    """Admin only. An admin cannot delete their own account."""
    deleted_id = user_service.delete_user(db, actor, user_id)
    return {"message": "User deleted successfully", "id": deleted_id}

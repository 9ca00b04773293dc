"""Authorization policy engine.

``decide`` is a pure function: it takes the acting identity, the capability
being requested and the ownership data already fetched for the resource, and
returns a tagged :class:`Decision`. It never touches storage or the request.

Rules are evaluated in order and the first match wins:

1. admin is allowed everything, except changing the role of or deleting
   their own account (denied with ``Reason.SELF_ACTION``);
2. role grants for coarse capabilities (technicians may read activity logs
   and use the assign endpoint);
3. the resource owner may view, update, delete, reopen and comment;
4. the technician a ticket is assigned to may view, update and delete it;
5. everything else is denied.

Assignment has a narrower rule layered on top, see :func:`decide_assignment`.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from helpdesk.core.enums import Role
from helpdesk.core.errors import AuthorizationError, SelfActionError

LOG = logging.getLogger(__name__)


class Action(str, Enum):
    VIEW_TICKET = "view_ticket"
    UPDATE_TICKET = "update_ticket"
    DELETE_TICKET = "delete_ticket"
    REOPEN_TICKET = "reopen_ticket"
    ASSIGN_TICKET = "assign_ticket"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"
    VIEW_ACTIVITY = "view_activity"
    LIST_USERS = "list_users"
    VIEW_USER = "view_user"
    CREATE_USER = "create_user"
    CHANGE_ROLE = "change_role"
    DELETE_USER = "delete_user"


class Reason(str, Enum):
    ADMIN = "admin"
    ROLE_GRANT = "role_grant"
    OWNER = "owner"
    ASSIGNEE = "assignee"
    SELF_ASSIGN = "self_assign"
    SELF_ACTION = "self_action"
    ASSIGN_SELF_ONLY = "assign_self_only"
    NOT_PERMITTED = "not_permitted"


@dataclass(frozen=True)
class Actor:
    """Authenticated identity making a request."""

    id: int
    role: Role

    def __post_init__(self):
        # Accept raw strings from tokens and rows.
        object.__setattr__(self, "role", Role(self.role))


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Reason

    def __bool__(self) -> bool:
        return self.allowed


ALLOW_ADMIN = Decision(True, Reason.ADMIN)
DENY = Decision(False, Reason.NOT_PERMITTED)

# Admin actions an admin may never direct at their own account.
SELF_PROTECTED = frozenset({Action.CHANGE_ROLE, Action.DELETE_USER})

ROLE_GRANTS = {
    Role.TECHNICIAN: frozenset({Action.VIEW_ACTIVITY, Action.ASSIGN_TICKET}),
}

OWNER_ACTIONS = frozenset(
    {
        Action.VIEW_TICKET,
        Action.UPDATE_TICKET,
        Action.DELETE_TICKET,
        Action.REOPEN_TICKET,
        Action.EDIT_COMMENT,
        Action.DELETE_COMMENT,
    }
)

ASSIGNEE_ACTIONS = frozenset(
    {Action.VIEW_TICKET, Action.UPDATE_TICKET, Action.DELETE_TICKET}
)


def decide(
    actor: Actor,
    action: Action,
    owner_id: Optional[int] = None,
    assignee_id: Optional[int] = None,
) -> Decision:
    """Evaluate ``action`` for ``actor`` against a resource.

    ``owner_id`` is the creator of a ticket, the author of a comment or, for
    user-directory actions, the target account. ``assignee_id`` is the
    ticket's assigned user, if any.
    """
    if actor.role == Role.ADMIN:
        if action in SELF_PROTECTED and owner_id == actor.id:
            return Decision(False, Reason.SELF_ACTION)
        return ALLOW_ADMIN

    if action in ROLE_GRANTS.get(actor.role, ()):
        return Decision(True, Reason.ROLE_GRANT)

    if action in OWNER_ACTIONS and owner_id is not None and owner_id == actor.id:
        return Decision(True, Reason.OWNER)

    if (
        action in ASSIGNEE_ACTIONS
        and actor.role == Role.TECHNICIAN
        and assignee_id is not None
        and assignee_id == actor.id
    ):
        return Decision(True, Reason.ASSIGNEE)

    return DENY


def decide_assignment(actor: Actor, target_user_id: int) -> Decision:
    """Admins assign to anyone; technicians only to themselves."""
    if actor.role == Role.ADMIN:
        return ALLOW_ADMIN
    if not decide(actor, Action.ASSIGN_TICKET):
        return DENY
    if target_user_id == actor.id:
        return Decision(True, Reason.SELF_ASSIGN)
    return Decision(False, Reason.ASSIGN_SELF_ONLY)


def enforce(
    decision: Decision,
    message: Optional[str] = None,
    *,
    actor: Optional[Actor] = None,
    action: Optional[Action] = None,
) -> Decision:
    """Raise the error matching a denied decision, return it otherwise.

    Denials are logged at warning when the caller passes the actor.
    """
    if decision.allowed:
        return decision
    if actor is not None:
        LOG.warning(
            "Access denied: user %s with role '%s' denied %s (%s)",
            actor.id,
            actor.role.value,
            action.value if action is not None else "-",
            decision.reason.value,
        )
    if decision.reason == Reason.SELF_ACTION:
        raise SelfActionError(message)
    if decision.reason == Reason.ASSIGN_SELF_ONLY:
        raise AuthorizationError("Technicians can only assign tickets to themselves")
    raise AuthorizationError(message)

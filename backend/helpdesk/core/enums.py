"""Canonical enumeration values shared by models, policy and routes.

Values are lowercase snake_case and persisted as plain strings.
"""

from enum import Enum


class Role(str, Enum):
    CLIENT = "client"
    TECHNICIAN = "technician"
    ADMIN = "admin"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Status(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"
    REOPENED = "reopened"


class ActivityAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    ASSIGNED = "assigned"
    REOPENED = "reopened"
    COMMENT_ADDED = "comment_added"
    COMMENT_EDITED = "comment_edited"
    COMMENT_DELETED = "comment_deleted"
    ROLE_UPDATED = "role_updated"
    USER_CREATED = "user_created"
    USER_DELETED = "user_deleted"


ROLE_VALUES = tuple(r.value for r in Role)
PRIORITY_VALUES = tuple(p.value for p in Priority)
STATUS_VALUES = tuple(s.value for s in Status)
ACTIVITY_ACTION_VALUES = tuple(a.value for a in ActivityAction)

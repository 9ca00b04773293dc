from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from helpdesk.db.session import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(String, nullable=False, default="client")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships. References to users are plain ids with no FK
    # constraint; deleting a user leaves them dangling.
    created_tickets = relationship(
        "Ticket",
        primaryjoin="User.id == foreign(Ticket.created_by)",
        back_populates="creator",
        passive_deletes="all",
    )
    assigned_tickets = relationship(
        "Ticket",
        primaryjoin="User.id == foreign(Ticket.assigned_to)",
        back_populates="assignee",
        passive_deletes="all",
    )


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="open")
    priority = Column(String, nullable=False, default="medium")
    due_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # User references
    created_by = Column(Integer, nullable=False, index=True)
    assigned_to = Column(Integer, nullable=True, index=True)

    # Relationships
    creator = relationship(
        "User",
        primaryjoin="foreign(Ticket.created_by) == User.id",
        back_populates="created_tickets",
    )
    assignee = relationship(
        "User",
        primaryjoin="foreign(Ticket.assigned_to) == User.id",
        back_populates="assigned_tickets",
    )
    comments = relationship(
        "Comment", back_populates="ticket", cascade="all, delete-orphan"
    )


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    ticket_id = Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    ticket = relationship("Ticket", back_populates="comments")
    author = relationship(
        "User", primaryjoin="foreign(Comment.user_id) == User.id", viewonly=True
    )


class ActivityLog(Base):
    """Append-only activity record.

    ticket_id and performed_by are plain id references so entries outlive
    the tickets and users they describe.
    """

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, nullable=True, index=True)
    action = Column(String, nullable=False)
    performed_by = Column(Integer, nullable=False, index=True)
    metadata_json = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    performer = relationship(
        "User", primaryjoin="foreign(ActivityLog.performed_by) == User.id", viewonly=True
    )

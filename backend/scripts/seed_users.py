#!/usr/bin/env python3
"""Seed the database with one demo account per role."""
import logging

from helpdesk.core import users as user_service
from helpdesk.core.enums import Role
from helpdesk.core.errors import ValidationError
from helpdesk.db.session import Base, SessionLocal, engine

LOG = logging.getLogger("seed_users")

DEMO_USERS = [
    {"name": "Admin", "email": "admin@example.com", "role": Role.ADMIN},
    {"name": "Tech One", "email": "tech@example.com", "role": Role.TECHNICIAN},
    {"name": "Client One", "email": "client@example.com", "role": Role.CLIENT},
]


def seed_users(password: str = "changeme123") -> int:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    created = 0
    try:
        for data in DEMO_USERS:
            try:
                user = user_service.create_user(db, password=password, **data)
            except ValidationError as e:
                LOG.info("skipping %s: %s", data["email"], e.message)
                continue
            created += 1
            LOG.info("created %s (%s) id=%s", user.email, user.role, user.id)
    finally:
        db.close()
    return created


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    seed_users()

#!/usr/bin/env python3
"""Verify that the database Alembic revision equals the single expected head.

Exit codes: 0 ok, 4 database behind or ahead, 5 no heads, 6 multiple heads.
"""
import logging
import sys
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from helpdesk.core.config import get_settings

LOG = logging.getLogger("verify_db_head")

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def expected_heads() -> tuple:
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    return tuple(ScriptDirectory.from_config(cfg).get_heads())


def current_revision(db_url: str) -> Optional[str]:
    engine = create_engine(db_url)
    try:
        with engine.connect() as conn:
            heads = MigrationContext.configure(conn).get_current_heads()
    finally:
        engine.dispose()
    return next((h for h in heads if h), None)


def check_head(db_url: str) -> int:
    heads = expected_heads()
    if not heads:
        LOG.error("no alembic heads found")
        return 5
    if len(heads) > 1:
        LOG.error("multiple alembic heads detected: %s", heads)
        return 6

    expected = heads[0]
    current = current_revision(db_url)
    LOG.info("expected head: %s, db current: %s", expected, current)
    if current != expected:
        LOG.error("db revision %s does not match expected head %s", current, expected)
        return 4
    return 0


def main() -> int:
    return check_head(get_settings().DATABASE_URL)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    sys.exit(main())

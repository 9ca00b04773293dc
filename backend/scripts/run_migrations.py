#!/usr/bin/env python3
"""Bring the database schema to the Alembic head.

- wait for the database
- if the schema exists but was never stamped (created by ``create_all``),
  stamp head instead of recreating tables
- otherwise upgrade to head
"""
import logging
import sys
from pathlib import Path

from sqlalchemy import create_engine, inspect

from alembic import command
from alembic.config import Config
from helpdesk.core.config import get_settings
from wait_for_db import wait_for_db

LOG = logging.getLogger("run_migrations")

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def main() -> int:
    if not wait_for_db():
        return 1

    db_url = get_settings().DATABASE_URL
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)

    engine = create_engine(db_url)
    try:
        tables = inspect(engine).get_table_names()
    finally:
        engine.dispose()

    if "alembic_version" not in tables and "users" in tables:
        LOG.info("existing schema without alembic_version, stamping head")
        command.stamp(cfg, "head")
        return 0

    LOG.info("running alembic upgrade head")
    command.upgrade(cfg, "head")
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    sys.exit(main())

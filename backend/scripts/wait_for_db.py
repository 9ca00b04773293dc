#!/usr/bin/env python3
"""Block until the configured database accepts connections."""
import logging
import sys
import time

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError

from helpdesk.core.config import get_settings

LOG = logging.getLogger("wait_for_db")


def wait_for_db(timeout: int = 60, interval: float = 1.0) -> bool:
    engine = create_engine(get_settings().DATABASE_URL, pool_pre_ping=True)
    deadline = time.monotonic() + timeout
    try:
        while True:
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                LOG.info("database is available")
                return True
            except OperationalError:
                if time.monotonic() >= deadline:
                    LOG.error("database did not become available in %ss", timeout)
                    return False
                LOG.info("waiting for database...")
                time.sleep(interval)
    finally:
        engine.dispose()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(0 if wait_for_db() else 1)

import logging

from sqlalchemy import text

from helpdesk.db.session import engine

LOG = logging.getLogger(__name__)


def check_db() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        LOG.warning("database readiness check failed", exc_info=True)
        return False

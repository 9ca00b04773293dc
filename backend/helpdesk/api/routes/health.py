from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from helpdesk.core.config import get_settings
from helpdesk.db import health

router = APIRouter()


@router.get("/healthz")
def healthz():
    settings = get_settings()
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "env": settings.ENV,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/readyz")
def readyz():
    timestamp = datetime.now(timezone.utc).isoformat()
    if health.check_db():
        return {
            "status": "ready",
            "checks": {"database": "ok"},
            "timestamp": timestamp,
        }
    return JSONResponse(
        status_code=503,
        content={
            "status": "unavailable",
            "checks": {"database": "fail"},
            "timestamp": timestamp,
        },
    )

from fastapi import APIRouter

from helpdesk.core.config import get_settings

router = APIRouter()


@router.get("/ping")
def ping():
    settings = get_settings()
    return {"status": "ok", "app": settings.APP_NAME, "env": settings.ENV}

from fastapi import APIRouter

from helpdesk.api.routes.activity import router as activity_router
from helpdesk.api.routes.comments import router as comments_router
from helpdesk.api.routes.health import router as health_router
from helpdesk.api.routes.ping import router as ping_router
from helpdesk.api.routes.tickets import router as tickets_router
from helpdesk.api.routes.users import router as users_router

api_router = APIRouter()
api_router.include_router(ping_router)
api_router.include_router(health_router)
api_router.include_router(users_router)
api_router.include_router(tickets_router)
api_router.include_router(comments_router)
api_router.include_router(activity_router)

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from helpdesk.api.router import api_router
from helpdesk.core.config import get_settings
from helpdesk.core.errors import AuthenticationError, HelpdeskError
from helpdesk.db.session import Base, engine

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
LOG = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)


@app.exception_handler(HelpdeskError)
async def handle_helpdesk_error(request: Request, exc: HelpdeskError):
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code, content={"message": exc.message}, headers=headers
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        if field:
            message = f"Invalid value for {field}: {first.get('msg')}"
        else:
            message = first.get("msg", message)
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    LOG.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"message": "Server error"}
    if get_settings().is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.on_event("startup")
def create_tables():
    """Create database tables on startup."""
    Base.metadata.create_all(bind=engine)

"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.events import CORS_HEADERS
from app.api.events import router as events_router
from app.config import get_settings
from app.db.session import engine
from app.errors import PipelineError
from app.events.emitter import get_event_emitter

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup, release the emitter HTTP client on shutdown."""
    settings.validate()
    # Import models to register them with SQLModel
    from app.models import (  # noqa: F401
        ActivityFeedEntry, Assignment, Automation, AutomationRun,
        Notification, OrgEvent, StaffMember,
    )
    SQLModel.metadata.create_all(engine)
    yield
    get_event_emitter().close()

app = FastAPI(
    title="Compliance Events API",
    description="Event pipeline for the compliance platform: emit, process and overdue scan",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Render pipeline errors as ``{"error", "detail"}`` with their status."""
    if exc.status_code >= 500:
        logger.error(
            exc.message,
            extra={"path": request.url.path, "detail": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=CORS_HEADERS,
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed or non-object request bodies."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid JSON body"},
        headers=CORS_HEADERS,
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        content = {"error": "Method not allowed", "method": request.method}
    else:
        content = {"error": str(exc.detail)}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers={**CORS_HEADERS, **(exc.headers or {})},
    )


# Register routers
app.include_router(events_router)


@app.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}

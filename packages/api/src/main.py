# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from db import DatabaseService
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .admin import setup_admin
from .core.config import settings
from .core.errors import InvalidStateError, WorkflowError
from .routes import (
    admin,
    appraisal,
    closing,
    closing_appointment,
    contingencies,
    documents,
    earnest_money,
    esign,
    funding,
    health,
    inspections,
    insurance,
    moving,
    offers,
    properties,
    signing,
    transactions,
    underwriting,
    walk_through,
)
from .schemas.error import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown lifecycle."""
    logging.basicConfig(level=settings.LOG_LEVEL)
    from .services.esign import init_esign_client
    from .services.notifications import init_dispatcher
    from .services.seed.seeder import seed_task_templates
    from .services.storage import init_storage_service

    db_service = DatabaseService(settings.DATABASE_URL)
    app.state.db_service = db_service
    if settings.DB_CREATE_ALL:
        await db_service.create_all()
        async with db_service.session() as session:
            await seed_task_templates(session)
    init_storage_service(settings)
    init_esign_client(settings)
    dispatcher = init_dispatcher(settings, db_service)
    yield
    await dispatcher.drain()
    await db_service.dispose()


app = FastAPI(
    title="Keystone Closings API",
    description="Real-estate transaction workflow from offer to move-in",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

_HTTP_STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    413: "Payload Too Large",
    500: "Internal Server Error",
    502: "Bad Gateway",
}

_HTTP_STATUS_KINDS: dict[int, str] = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    502: "dependency_error",
}


def _request_id(request: Request) -> str:
    return request.headers.get("x-request-id", str(uuid.uuid4()))


def _build_error(
    request: Request,
    status_code: int,
    detail: str,
    *,
    kind: str | None = None,
    current_state: str | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        type="about:blank",
        title=_HTTP_STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        kind=kind or _HTTP_STATUS_KINDS.get(status_code, "error"),
        detail=detail,
        current_state=current_state,
        request_id=_request_id(request),
        instance=request.url.path,
    )


@app.exception_handler(WorkflowError)
async def workflow_exception_handler(request: Request, exc: WorkflowError):
    """Convert service-layer errors to RFC 7807 Problem Details."""
    current_state = exc.current_state if isinstance(exc, InvalidStateError) else None
    if exc.status_code >= 500:
        logger.warning("%s on %s: %s", exc.kind, request.url.path, exc.message)
    body = _build_error(
        request, exc.status_code, exc.message, kind=exc.kind, current_state=current_state,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    """A unique or foreign-key violation that slipped past the service checks (409)."""
    logger.warning("Integrity violation on %s: %s", request.url.path, exc.orig)
    body = _build_error(
        request, 409, "The request conflicts with the current state of the resource.",
        kind="conflict",
    )
    return JSONResponse(status_code=409, content=body.model_dump())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    body = _build_error(request, exc.status_code, str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details (400)."""
    messages = [
        f"{'.'.join(str(part) for part in err['loc'] if part != 'body')}: {err['msg']}"
        for err in exc.errors()
    ]
    body = _build_error(request, 400, "; ".join(messages), kind="validation_error")
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    body = _build_error(request, 500, "An unexpected error occurred.")
    logger.exception("Unhandled exception (request_id=%s)", body.request_id)
    return JSONResponse(status_code=500, content=body.model_dump())


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(properties.router, prefix="/api/properties", tags=["properties"])
app.include_router(offers.router, prefix="/api/offers", tags=["offers"])
app.include_router(transactions.router, prefix="/api/transactions", tags=["transactions"])
app.include_router(earnest_money.router, prefix="/api/transactions", tags=["earnest-money"])
app.include_router(inspections.router, prefix="/api/transactions", tags=["inspections"])
app.include_router(contingencies.router, prefix="/api/transactions", tags=["contingencies"])
app.include_router(appraisal.router, prefix="/api/transactions", tags=["appraisal"])
app.include_router(underwriting.router, prefix="/api/transactions", tags=["underwriting"])
app.include_router(closing.router, prefix="/api/transactions", tags=["closing"])
app.include_router(insurance.router, prefix="/api/transactions", tags=["insurance"])
app.include_router(walk_through.router, prefix="/api/transactions", tags=["walk-through"])
app.include_router(
    closing_appointment.router, prefix="/api/transactions", tags=["closing-appointment"]
)
app.include_router(signing.router, prefix="/api/transactions", tags=["signing"])
app.include_router(funding.router, prefix="/api/transactions", tags=["funding"])
app.include_router(moving.router, prefix="/api/transactions", tags=["moving"])
app.include_router(documents.router, prefix="/api/documents", tags=["documents"])
app.include_router(esign.router, prefix="/api/esign", tags=["esign"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

# Setup SQLAdmin dashboard at /admin
if settings.SQLADMIN_ENABLED:
    setup_admin(app)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Welcome to Keystone Closings API"}

"""FastAPI application factory and entry point.

Creates the application instance, registers middleware and error
handlers, and mounts the route routers.

Usage::

    # Development server (from project root)
    uvicorn research_board.api.main:app --reload

    # Production
    gunicorn research_board.api.main:app -k uvicorn.workers.UvicornWorker
"""

from __future__ import annotations

import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from research_board.config.settings import get_settings
from research_board.core.database import build_engine, build_session_factory
from research_board.core.exceptions import (
    ConflictError,
    NotFoundError,
    ResearchBoardError,
    StoreUnavailableError,
    ValidationError,
)
from research_board.core.logging_config import caller_id_var, configure_logging

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: dict[type[ResearchBoardError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    ConflictError: 409,
    StoreUnavailableError: 503,
}


_UUID_ERROR_TYPES = frozenset({"uuid_parsing", "uuid_type", "uuid_version"})

_ENTITY_BY_PATH_PARAM = {
    "project_id": "Project",
    "milestone_id": "ProjectMilestone",
    "slot_id": "ProjectSlot",
    "application_id": "SlotApplication",
}


def status_for(exc: ResearchBoardError) -> int:
    """Return the HTTP status code for a board exception (500 if unmapped)."""
    for exc_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def research_board_error_handler(request: Request, exc: ResearchBoardError) -> JSONResponse:
    """Render a board exception as ``{"error": <kind>, "detail": <message>}``."""
    status_code = status_for(exc)
    log_fn = logger.error if status_code >= 500 else logger.info
    log_fn("request_failed", error=exc.kind, detail=str(exc), path=request.url.path)
    body: dict[str, object] = {"error": exc.kind, "detail": str(exc)}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return JSONResponse(status_code=status_code, content=body)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render FastAPI's own request validation failures in the board's format.

    These cover path and query parameters; request bodies are validated by
    the services.  Ids are opaque, so a path id that is not a UUID names
    no row and renders as 404 like any other unknown id.
    """
    first = exc.errors()[0] if exc.errors() else {}
    loc = tuple(first.get("loc", ()))
    if len(loc) == 2 and loc[0] == "path" and first.get("type") in _UUID_ERROR_TYPES:
        entity = _ENTITY_BY_PATH_PARAM.get(str(loc[1]), str(loc[1]))
        return await research_board_error_handler(
            request, NotFoundError(entity, first.get("input"))
        )

    field = ".".join(str(part) for part in loc) or None
    logger.info("request_failed", error=ValidationError.kind, field=field, path=request.url.path)
    return JSONResponse(
        status_code=422,
        content={
            "error": ValidationError.kind,
            "detail": first.get("msg", "Invalid request"),
            "field": field,
        },
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Build the engine and session factory on startup; dispose on shutdown.

    A test can pre-populate ``app.state.session_factory`` before the app
    starts; the lifespan then leaves it alone and owns no engine.
    """
    settings = get_settings()
    engine = None
    if getattr(application.state, "session_factory", None) is None:
        engine = build_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
        application.state.session_factory = build_session_factory(engine)

    logger.info(
        "application_startup",
        app_name=settings.app_name,
        debug=settings.debug,
        log_level=settings.log_level,
    )
    try:
        yield
    finally:
        if engine is not None:
            await engine.dispose()
        logger.info("application_shutdown")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application.

    Separated from the module-level ``app`` singleton so that tests can
    call ``create_app()`` with a patched settings environment.

    Returns:
        A fully configured ``FastAPI`` instance.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        description=(
            "Coordination board matching volunteer students to research "
            "projects grouped by specialty."
        ),
        version="0.1.0",
        debug=settings.debug,
        redirect_slashes=False,
        lifespan=lifespan,
    )
    application.state.session_factory = None

    # ---- Middleware --------------------------------------------------------

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def request_logging_middleware(
        request: Request, call_next: Callable
    ) -> Response:
        """Log every request with its status code and duration.

        Binds ``request_id`` and the raw caller header to the structlog
        context so every log line of the request can be correlated.
        """
        request_id = str(uuid.uuid4())
        caller_id = request.headers.get(settings.caller_id_header)
        caller_id_var.set(caller_id)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        start = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error("unhandled_exception", exc_info=exc)
            raise
        finally:
            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = getattr(response, "status_code", 500)
            log_fn = logger.warning if status_code >= 400 else logger.info
            log_fn(
                "request_complete",
                status_code=status_code,
                elapsed_ms=elapsed_ms,
            )

        response.headers["X-Request-ID"] = request_id
        return response

    # ---- Error handlers ----------------------------------------------------

    application.add_exception_handler(ResearchBoardError, research_board_error_handler)
    application.add_exception_handler(RequestValidationError, request_validation_error_handler)

    # ---- Routers -----------------------------------------------------------

    from research_board.api.routes import (  # noqa: PLC0415
        applications,
        milestones,
        projects,
        slots,
        specialties,
        users,
    )

    application.include_router(specialties.router, prefix="/specialties", tags=["specialties"])
    application.include_router(projects.router, prefix="/projects", tags=["projects"])
    application.include_router(milestones.router, prefix="/milestones", tags=["milestones"])
    application.include_router(slots.router, prefix="/slots", tags=["slots"])
    application.include_router(applications.router, prefix="/applications", tags=["applications"])
    application.include_router(users.router, prefix="/users", tags=["users"])

    # ---- Health endpoint ---------------------------------------------------

    @application.get("/health", tags=["system"])
    async def health() -> JSONResponse:
        """Return a minimal process-level liveness status without any I/O."""
        return JSONResponse({"status": "ok"})

    return application


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

app = create_app()
"""The FastAPI application instance.

This is the ASGI callable passed to Uvicorn / Gunicorn.
"""

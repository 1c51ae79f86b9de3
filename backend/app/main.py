"""
FastAPI application.

Wires the milestone router, correlation ids, and the mapping from domain
errors to HTTP status codes.
"""
import logging
from typing import Optional
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.deps import PermissionGate, allow_all
from app.api.milestones import router as milestones_router
from app.config import settings
from app.orchestrators.base import OrchestrationError
from app.orchestrators.milestone_update_orchestrator import (
    MilestoneNotFoundError,
    TimelineNotFoundError,
)
from app.services.event_publisher import EventPublisher, LoggingEventPublisher
from app.services.milestone_merge import MilestoneValidationError
from app.utils.invariants import InvariantViolationError
from app.utils.responses import wrap_error

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"
HTTP_422_UNPROCESSABLE = 422


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid4())


def _error(request: Request, status_code: int, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=wrap_error(_request_id(request), message, status_code, details),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Translate domain errors into enveloped HTTP errors."""

    @app.exception_handler(TimelineNotFoundError)
    @app.exception_handler(MilestoneNotFoundError)
    async def not_found_handler(request: Request, exc: Exception):
        return _error(request, status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(MilestoneValidationError)
    async def validation_handler(request: Request, exc: MilestoneValidationError):
        return _error(request, HTTP_422_UNPROCESSABLE, str(exc), exc.details or None)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
            for e in exc.errors()
        ]
        return _error(request, HTTP_422_UNPROCESSABLE, "Invalid request", errors)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error(request, exc.status_code, str(exc.detail))

    @app.exception_handler(InvariantViolationError)
    async def invariant_handler(request: Request, exc: InvariantViolationError):
        logger.error("Invariant violated, update rolled back: %s", exc)
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), exc.details)

    @app.exception_handler(OrchestrationError)
    async def orchestration_handler(request: Request, exc: OrchestrationError):
        logger.error("Orchestration failed: %s", exc)
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    @app.exception_handler(Exception)
    async def unhandled_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error for request %s", _request_id(request))
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(
    publisher: Optional[EventPublisher] = None,
    permission_gate: Optional[PermissionGate] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        publisher: Event bus collaborator (logs events when omitted)
        permission_gate: Permission collaborator (allows all when omitted)
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title=settings.app_name)
    app.state.event_publisher = publisher or LoggingEventPublisher()
    app.state.permission_gate = permission_gate or allow_all

    @app.middleware("http")
    async def correlation_id(request: Request, call_next):
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response

    register_exception_handlers(app)
    app.include_router(milestones_router)
    return app


app = create_app()

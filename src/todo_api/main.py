from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .activity_log import ActivityLogReader, ActivityLogWriter
from .activity_store import ActivityLogStore, build_activity_log_store
from .errors import StoreUnavailableError, TodoNotFoundError
from .observability import get_logger, setup_logging
from .repositories import Repository, build_repository
from .routers import activity_logs as activity_logs_router
from .routers import todos as todos_router
from .settings import Settings, get_settings

logger = get_logger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "todos", "description": "CRUD operations for Todo items; every mutation is recorded in the activity log."},
    {"name": "activity-logs", "description": "Read access to the append-only activity log."},
]


async def not_found_handler(request: Request, exc: TodoNotFoundError) -> Response:
    """Missing todos are reported as a bare 404 without a body."""
    return Response(status_code=status.HTTP_404_NOT_FOUND)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Return a consistent JSON structure for request validation errors.

    Response format:
        {
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...],
            "message": "Request validation failed"
        }
    """
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("store_unavailable", store=exc.store, error=exc.message, path=request.url.path)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "StoreUnavailable", "message": exc.message, "store": exc.store},
    )


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[Repository] = None,
    activity_store: Optional[ActivityLogStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Store handles default to the backends named in settings; tests pass their
    own instances to get isolated state.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Todo Backend",
        description="Todo API with an append-only activity log kept in a separate store.",
        version="0.2.0",
        openapi_tags=openapi_tags,
    )

    log_store = activity_store or build_activity_log_store(settings)
    app.state.settings = settings
    app.state.repository = repository or build_repository(settings)
    app.state.activity_writer = ActivityLogWriter(log_store, strict=settings.activity_log_strict)
    app.state.activity_reader = ActivityLogReader(log_store)

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(TodoNotFoundError, not_found_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StoreUnavailableError, store_unavailable_handler)

    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health and the configured backends.
        """
        return {
            "message": "Healthy",
            "backend": settings.persistence_backend,
            "activityLogBackend": settings.activity_log_backend,
        }

    app.include_router(todos_router.router)
    app.include_router(activity_logs_router.router)

    logger.info(
        "app_configured",
        backend=settings.persistence_backend,
        activity_log_backend=settings.activity_log_backend,
        activity_log_strict=settings.activity_log_strict,
    )
    return app


app = create_app()

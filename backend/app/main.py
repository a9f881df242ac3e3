"""FastAPI application factory, error handlers and request logging."""

import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.api.routes.admin import router as admin_router
from backend.app.api.routes.auth import router as auth_router
from backend.app.api.routes.billing import router as billing_router
from backend.app.api.routes.dashboard import company_router
from backend.app.api.routes.dashboard import router as dashboard_router
from backend.app.api.routes.documents import archive_router
from backend.app.api.routes.documents import router as documents_router
from backend.app.api.routes.health import router as health_router
from backend.app.api.routes.metrics import router as metrics_router
from backend.app.api.routes.songwriter import router as songwriter_router
from backend.app.api.routes.style_profiles import router as style_profiles_router
from backend.app.api.routes.templates import router as templates_router
from backend.app.api.routes.topics import intelligence_router
from backend.app.api.routes.topics import router as topics_router
from backend.app.api.routes.uploads import router as uploads_router
from backend.app.config import Settings, get_settings
from backend.app.db.engine import get_storage
from backend.app.db.seed import seed_demo_accounts
from backend.app.errors import AIServiceError, NotFoundError
from backend.app.utils.logging import StructuredRequestLogger, configure_logging

logger = logging.getLogger(__name__)
request_logger = StructuredRequestLogger()

API_TITLE = "IWRITE API"
API_VERSION = "0.1.0"
INTERNAL_ERROR = "Internal Server Error"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(settings.log_level)
    settings.validate_for_startup()

    if settings.seed_demo_accounts:
        created = seed_demo_accounts(get_storage())
        logger.info(f"Demo accounts ready ({created} created)")

    logger.info(f"{API_TITLE} started", extra={"structured": {"environment": settings.environment}})
    yield


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Render every error as a JSON ``{"error": ...}`` body."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        headers = getattr(exc, "headers", None)
        if isinstance(exc.detail, dict):
            return JSONResponse(status_code=exc.status_code, content=exc.detail, headers=headers)
        return _error(exc.status_code, str(exc.detail), headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, _format_validation_errors(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, str(exc) or "Not found")

    @app.exception_handler(AIServiceError)
    async def ai_error_handler(request: Request, exc: AIServiceError) -> JSONResponse:
        logger.error(f"AI {exc.operation} failed: {exc}")
        message = INTERNAL_ERROR if settings.is_production else str(exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, message)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        message = INTERNAL_ERROR if settings.is_production else (str(exc) or INTERNAL_ERROR)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use (defaults to the cached environment settings)

    Returns:
        Configured application
    """
    settings = settings or get_settings()
    app = FastAPI(title=API_TITLE, version=API_VERSION, lifespan=lifespan)

    origins = [origin.strip() for origin in settings.cors_origin.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        # Browsers reject credentialed requests to a wildcard origin
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            request_logger.log_request(
                request.method,
                request.url.path,
                response.status_code,
                (time.monotonic() - start) * 1000,
                user_id=getattr(request.state, "user_id", None),
            )
        return response

    register_exception_handlers(app, settings)

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.include_router(company_router)
    app.include_router(documents_router)
    app.include_router(archive_router)
    app.include_router(templates_router)
    app.include_router(style_profiles_router)
    app.include_router(uploads_router)
    app.include_router(topics_router)
    app.include_router(intelligence_router)
    app.include_router(songwriter_router)
    app.include_router(admin_router)
    app.include_router(billing_router)

    @app.get("/")
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": API_TITLE, "version": API_VERSION}

    return app


app = create_app()


def run() -> None:
    """Serve the app with uvicorn on the configured port."""
    settings = get_settings()
    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=settings.port, log_level=settings.log_level.lower())

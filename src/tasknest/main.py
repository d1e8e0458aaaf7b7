"""FastAPI application entry point."""

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from tasknest import __version__
from tasknest.api import router
from tasknest.api.limits import limiter
from tasknest.config import get_settings
from tasknest.database import close_db, init_db
from tasknest.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    OperationFailedError,
    TaskNestError,
    ValidationError,
)
from tasknest.log import configure_logging

logger = structlog.get_logger()

ERROR_STATUS = {
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    OperationFailedError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def handle_tasknest_error(request: Request, exc: TaskNestError) -> JSONResponse:
    """Render a known error kind as a JSON response."""
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    body = {"error": exc.kind, "detail": exc.message}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field

    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}

    if status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.message)
    else:
        logger.info(
            "request_rejected",
            path=request.url.path,
            error=exc.kind,
            status_code=status_code,
        )
    return JSONResponse(status_code=status_code, content=body, headers=headers)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Log anything unhandled and hide its details from the client."""
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": OperationFailedError.kind, "detail": "Operation failed"},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    logger.info("application_started", version=__version__)

    yield

    # Shutdown
    await close_db()
    logger.info("application_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title=settings.app_name,
        description="Per-user todo lists with categories, bulk actions and a live change feed",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(TaskNestError, handle_tasknest_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=settings.cors_allow_credentials,
            allow_methods=settings.cors_allow_methods,
            allow_headers=settings.cors_allow_headers,
            max_age=settings.cors_max_age,
        )

    # Include API routes
    app.include_router(router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()


def run_server():
    """Run the API server."""
    settings = get_settings()
    uvicorn.run(
        "tasknest.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run_server()

"""FastAPI main application with app factory and route configuration."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional, Type

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .clock import Clock, utc_now
from .config import Settings
from .deps import get_settings
from .exceptions import (
    BusinessRuleViolation,
    DomainError,
    DuplicateEntityError,
    EntityNotFoundError,
    ForbiddenError,
    UnauthorizedError,
    ValidationError,
)
from .repositories.memory import InMemoryTaskRepository, InMemoryUserRepository
from .routes import auth, tasks
from .schemas import HealthResponse
from .services import auth_service, statistics_service, task_service
from .utils.logging import log_shutdown_info, log_startup_info, setup_logging

logger = logging.getLogger(__name__)

DOMAIN_ERROR_STATUS: Dict[Type[DomainError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    EntityNotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateEntityError: status.HTTP_409_CONFLICT,
    BusinessRuleViolation: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def status_for(exc: DomainError) -> int:
    """Map a domain error to its HTTP status code."""
    for error_type, code in DOMAIN_ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events.

    Args:
        app: FastAPI application instance
    """
    settings: Settings = app.state.settings
    clock: Clock = app.state.clock

    try:
        # Setup logging
        setup_logging(settings)
        log_startup_info(settings)

        # Initialize services; tasks and statistics share one store
        task_repository = InMemoryTaskRepository(clock)
        task_service.initialize_task_service(task_repository, clock)
        logger.info("Task service initialized")

        statistics_service.initialize_statistics_service(task_repository, clock)
        logger.info("Statistics service initialized")

        auth_service.initialize_auth_service(InMemoryUserRepository(), settings)
        logger.info("Auth service initialized")

        logger.info("Application startup completed successfully")

    except Exception as e:
        logger.error(f"Error during application startup: {str(e)}")
        raise

    yield

    log_shutdown_info(settings)


def create_app(settings: Optional[Settings] = None, clock: Clock = utc_now) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to run with; defaults to the environment-loaded settings
        clock: Source of the current time for the task services

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Task management service with scheduling, deadlines and progress insights",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.clock = clock

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add custom middleware for request logging
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests."""
        logger.info(f"Request: {request.method} {request.url.path}")

        response = await call_next(request)

        logger.info(
            f"Response: {response.status_code} for {request.method} {request.url.path}"
        )

        return response

    # Custom exception handlers
    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        """Translate domain errors into JSON error responses."""
        status_code = status_for(exc)
        logger.warning(
            f"{exc.error_code} ({status_code}): {exc.message} for {request.method} {request.url.path}"
        )

        content = exc.to_dict()
        content["status_code"] = status_code
        content["path"] = request.url.path
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with proper logging."""
        logger.warning(
            f"HTTP {exc.status_code}: {exc.detail} for {request.method} {request.url.path}"
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.detail,
                "status_code": exc.status_code,
                "path": request.url.path,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        """Handle request validation errors with detailed information."""
        logger.warning(
            f"Validation error for {request.method} {request.url.path}: {exc.errors()}"
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "Validation error",
                "details": jsonable_encoder(exc.errors()),
                "status_code": 422,
                "path": request.url.path,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.error(
            f"Unexpected error for {request.method} {request.url.path}: {str(exc)}",
            exc_info=True,
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "status_code": 500,
                "path": request.url.path,
            },
        )

    # Health check endpoint
    @app.get("/healthz", response_model=HealthResponse, tags=["health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint for monitoring and load balancers.

        Returns:
            Health status information
        """
        services = {
            "task_service": task_service.get_task_service(),
            "statistics_service": statistics_service.get_statistics_service(),
            "auth_service": auth_service.get_auth_service(),
        }
        health = HealthResponse(
            services={
                name: "initialized" if service else "not_initialized"
                for name, service in services.items()
            }
        )

        # Determine overall health
        if not all(services.values()):
            health.status = "degraded"

        return health

    # Root endpoint
    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information.

        Returns:
            API information and available endpoints
        """
        return {
            "name": settings.app_name,
            "version": "1.0.0",
            "docs_url": "/docs",
            "health_check": "/healthz",
            "endpoints": {
                "auth": "/auth",
                "tasks": "/tasks",
                "statistics": "/tasks/statistics",
            },
        }

    # Routers carry their own prefixes and tags
    app.include_router(auth.router)
    app.include_router(tasks.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the app instance
app = create_app()


def run() -> None:
    """Run the API with uvicorn using the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "task_manager.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()

import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from fastapi.routing import APIRoute
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import Engine
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware

from alterations.api.main import api_router
from alterations.core.config import Settings, settings
from alterations.core.db import create_db_engine, init_db
from alterations.core.observability import (
    REQUEST_COUNT,
    REQUEST_DURATION,
    get_logger,
    set_correlation_id,
    set_staff_id,
    setup_structured_logging,
)
from alterations.domain.shared.exceptions import DomainError, ErrorType
from alterations.infrastructure.events import (
    InMemoryEventBus,
    register_default_handlers,
)

# Initialize structured logger
logger = get_logger(__name__)

STATUS_BY_ERROR_TYPE = {
    ErrorType.VALIDATION: 400,
    ErrorType.AUTHENTICATION: 401,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CAPACITY_EXHAUSTED: 409,
    ErrorType.CONCURRENCY: 409,
    ErrorType.REPOSITORY: 500,
}


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Middleware for request observability and metrics collection."""

    async def dispatch(self, request: Request, call_next):
        # Generate correlation ID for request tracing
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        set_correlation_id(correlation_id)

        staff_id = request.headers.get("X-Staff-ID", "")
        set_staff_id(staff_id)

        start_time = time.time()
        method = request.method
        path = request.url.path

        logger.info(
            "Request started",
            method=method,
            path=path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            REQUEST_COUNT.labels(method=method, endpoint=path, status="500").inc()
            REQUEST_DURATION.labels(method=method, endpoint=path).observe(duration)
            logger.error(
                "Request failed",
                method=method,
                path=path,
                duration_seconds=duration,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        status_code = response.status_code
        REQUEST_COUNT.labels(method=method, endpoint=path, status=str(status_code)).inc()
        REQUEST_DURATION.labels(method=method, endpoint=path).observe(duration)

        response.headers["X-Correlation-ID"] = correlation_id

        logger.info(
            "Request completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_seconds=duration,
        )
        return response


def custom_generate_unique_id(route: APIRoute) -> str:
    if not route.tags:
        return route.name
    return f"{route.tags[0]}-{route.name}"


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = STATUS_BY_ERROR_TYPE.get(exc.error_type, 500)

    if status_code >= 500:
        logger.error(
            "Domain operation failed",
            path=request.url.path,
            error_type=exc.error_type.value,
            error=exc.message,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": "Internal server error"},
        )

    if exc.error_type == ErrorType.CAPACITY_EXHAUSTED:
        # Business outcome, not a system failure
        logger.info("Capacity exhausted", path=request.url.path, **exc.details)
    else:
        logger.warning(
            "Request rejected",
            path=request.url.path,
            error_type=exc.error_type.value,
            error=exc.message,
        )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": exc.to_dict()},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        path=request.url.path,
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create tables and report configuration on startup."""
    config: Settings = app.state.settings
    logger.info("Starting application initialization")

    try:
        init_db(app.state.engine)
        logger.info(
            "Application started successfully",
            project_name=config.PROJECT_NAME,
            environment=config.ENVIRONMENT,
            api_version=config.API_V1_STR,
            metrics_enabled=config.ENABLE_METRICS,
            non_working_weekday=config.NON_WORKING_WEEKDAY,
            horizon_days=config.SCHEDULING_HORIZON_DAYS,
        )
        yield
    except Exception as e:
        logger.error("Application startup failed", error=str(e), exc_info=True)
        raise
    finally:
        logger.info("Shutting down application")


def create_app(config: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    config = config or settings
    setup_structured_logging(config)

    # Initialize Sentry for error tracking
    if config.SENTRY_DSN and config.ENVIRONMENT != "local":
        sentry_sdk.init(
            dsn=str(config.SENTRY_DSN),
            enable_tracing=True,
            traces_sample_rate=1.0 if config.ENVIRONMENT == "staging" else 0.1,
            environment=config.ENVIRONMENT,
        )

    application = FastAPI(
        title=config.PROJECT_NAME,
        description="""
        Alterations Scheduler

        Places garment-alteration work on calendar days under daily jacket and
        pants capacity, assigns it to working staff, and tracks every garment
        part through QR scans until pickup.
        """,
        version="0.1.0",
        openapi_url=f"{config.API_V1_STR}/openapi.json",
        docs_url="/docs",
        redoc_url="/redoc",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )
    application.state.settings = config
    application.state.engine = engine or create_db_engine(config)
    application.state.event_bus = register_default_handlers(InMemoryEventBus())

    application.add_exception_handler(DomainError, domain_error_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)

    # Add observability middleware
    application.add_middleware(ObservabilityMiddleware)

    # Set all CORS enabled origins
    if config.all_cors_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=config.all_cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    application.include_router(api_router, prefix=config.API_V1_STR)

    if config.ENABLE_METRICS:

        @application.get("/metrics", tags=["metrics"], include_in_schema=False)
        def metrics() -> Response:
            return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return application


app = create_app()

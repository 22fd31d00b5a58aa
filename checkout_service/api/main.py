"""
Main FastAPI application.

Checkout API with:
- Checkout queries and gateway notification endpoint
- Order-created queue listener running alongside the API (optional)
- Request ID tracking
- Structured logging
- Prometheus metrics
"""
import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, List

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from checkout_service import __version__
from checkout_service.config import get_settings
from checkout_service.core.listener import QueueListener
from checkout_service.database.connection import close_db, init_db
from checkout_service.monitoring.logging import setup_logging
from checkout_service.workers.order_created_worker import build_queue_listeners

from .dependencies import (
    get_checkout_store,
    get_event_publisher,
    get_payment_gateway,
    get_sqs_client,
)
from .routes import checkout_router, monitoring_router

setup_logging()
logger = structlog.get_logger(__name__)

settings = get_settings()


async def _stop_listeners(
    listeners: List[QueueListener], tasks: List["asyncio.Task[None]"]
) -> None:
    for listener in listeners:
        listener.stop()
    if tasks:
        await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("queue_listeners_stopped", count=len(listeners))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
    """
    Application lifespan manager.

    Initializes the database and, when enabled, runs the queue listeners as
    background tasks for the lifetime of the app.
    """
    logger.info(
        "application_startup",
        app_name=settings.app_name,
        env=settings.app_env,
        test_mode=settings.is_test_mode,
    )

    try:
        await init_db()
        logger.info("database_initialized")
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        raise

    listeners: List[QueueListener] = []
    tasks: List["asyncio.Task[None]"] = []
    if settings.run_listener_in_api:
        listeners = build_queue_listeners(
            sqs_client=get_sqs_client(),
            store=get_checkout_store(),
            gateway=get_payment_gateway(),
            publisher=get_event_publisher(),
            settings=settings,
        )
        tasks = [asyncio.create_task(listener.start()) for listener in listeners]
        logger.info("queue_listeners_started", count=len(listeners))

    yield

    logger.info("application_shutdown")
    await _stop_listeners(listeners, tasks)
    try:
        await close_db()
        logger.info("database_connections_closed")
    except Exception as e:
        logger.error("database_shutdown_error", error=str(e))


app = FastAPI(
    title="Checkout Service",
    description=(
        "Tracks the payment lifecycle of orders: creates PIX payments for new orders, "
        "follows gateway notifications and notifies downstream services."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id_middleware(request: Request, call_next: Any) -> Response:
    """Bind a request ID to the logging context and echo it in the response."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start_time = time.time()

    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )

    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "request_completed",
            status_code=response.status_code,
            duration_seconds=time.time() - start_time,
        )
        return response

    except Exception as e:
        logger.error(
            "request_failed",
            error=str(e),
            duration_seconds=time.time() - start_time,
        )
        raise

    finally:
        structlog.contextvars.clear_contextvars()


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.
    """
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


app.include_router(checkout_router)
app.include_router(monitoring_router)


@app.get("/", tags=["root"])
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": __version__,
        "status": "operational",
        "environment": settings.app_env,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }


def main() -> None:
    import uvicorn

    uvicorn.run(
        "checkout_service.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        workers=settings.api_workers if not settings.debug else 1,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

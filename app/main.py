"""Main FastAPI application for the Collections Triage Service."""

import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.conversations import approvals_router
from app.api.conversations import router as conversations_router
from app.api.dashboard import router as dashboard_router
from app.api.escalations import router as escalations_router
from app.api.health import router as health_router
from app.api.payment_plans import router as payment_plans_router
from app.api.tenants import router as tenants_router
from app.core.config import Settings, get_settings
from app.core.exceptions import TriageError, format_validation_errors
from app.core.logging import get_logger, setup_logging
from app.core.middleware import CorrelationIDMiddleware
from app.services.seed import seed_demo_data
from app.services.store import EntityStore

logger = get_logger(__name__)


async def triage_error_handler(request: Request, exc: TriageError) -> JSONResponse:
    logger.warning(
        "Request rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.detail,
        **exc.context,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    detail = format_validation_errors(exc.errors())
    logger.warning("Request validation failed", path=request.url.path, error=detail)
    return JSONResponse(status_code=422, content={"error": f"Validation failed: {detail}"})


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(settings: Optional[Settings] = None, store: Optional[EntityStore] = None) -> FastAPI:
    """
    Build the application around its own entity store.

    Args:
        settings: Settings to run with; defaults to the environment settings
        store: Store to serve; a fresh one is created when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Collections Triage Service",
        description="Review AI-drafted tenant messages, payment plans and escalations",
        version=settings.service_version,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    if store is None:
        store = EntityStore()
        if settings.seed_demo_data:
            seed_demo_data(store)

    app.state.settings = settings
    app.state.store = store
    app.state.start_time = time.time()

    app.add_middleware(CorrelationIDMiddleware)

    if settings.enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(TriageError, triage_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(tenants_router)
    app.include_router(conversations_router)
    app.include_router(approvals_router)
    app.include_router(payment_plans_router)
    app.include_router(escalations_router)
    app.include_router(dashboard_router)
    app.include_router(health_router)

    @app.on_event("startup")
    async def startup_event():
        """Log application startup."""
        logger.info(
            "Starting Collections Triage Service",
            version=settings.service_version,
            tenants=store.count("tenant"),
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Shutting down Collections Triage Service")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )

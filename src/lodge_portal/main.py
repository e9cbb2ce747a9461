"""
FastAPI application entry point.

Hosts the privileged delete-user endpoint and health checks.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lodge_portal.admin.identity_admin import get_identity_admin
from lodge_portal.admin.router import router as admin_router
from lodge_portal.admin.service import UserDeletionService
from lodge_portal.auth.factory import get_session_store
from lodge_portal.auth.jwt import JWTHandler
from lodge_portal.config import Settings, get_settings
from lodge_portal.members.diagnostics import run_connection_check
from lodge_portal.shared.exceptions import AppException
from lodge_portal.shared.logging import get_logger, setup_logging
from lodge_portal.shared.middleware import CorrelationIdMiddleware
from lodge_portal.shared.timeouts import TimeoutPolicy
from lodge_portal.store.factory import get_data_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level)

    logger.info("Application starting", extra={"env": settings.app_env})

    policy = TimeoutPolicy.from_settings(settings)
    store = get_data_store(settings, api_key=settings.supabase_service_role_key)
    identity_admin = get_identity_admin(settings)
    session_store = get_session_store(settings)

    app.state.data_store = store
    app.state.identity_admin = identity_admin
    app.state.session_store = session_store
    app.state.policy = policy
    app.state.jwt_handler = JWTHandler(settings)
    app.state.deletion_service = UserDeletionService(store, identity_admin, policy)

    yield

    logger.info("Shutting down application")
    await session_store.close()
    await identity_admin.close()
    await store.close()
    logger.info("Application shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Lodge Portal API",
        description="Privileged member administration for the lodge website",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.settings = settings

    # Map domain exceptions to HTTP responses
    @app.exception_handler(AppException)
    async def _app_exception(_: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"code": exc.code, "error": exc.message},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message, "code": exc.code},
        )

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "Request validation failed",
                "code": "VALIDATION_ERROR",
                "errors": errors,
            },
        )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["POST", "OPTIONS", "GET"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    app.add_middleware(CorrelationIdMiddleware)

    app.include_router(admin_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/health/backend")
    async def backend_health(request: Request) -> JSONResponse:
        report = await run_connection_check(
            request.app.state.data_store,
            request.app.state.session_store,
            request.app.state.policy,
        )
        body: dict[str, Any] = report.to_dict()
        return JSONResponse(
            status_code=status.HTTP_200_OK if report.success else status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body,
        )

    return app


app = create_app()

"""
GatePilot FastAPI Service

REST API for L-Gate portfolio governance.

Endpoints:
    GET  /health                                   - Liveness probe
    GET  /ready                                    - Readiness probe (catalog + storage)
    GET  /api/user/role                            - Caller's role
    PUT  /api/user/{user_id}/role                  - Assign a role
    GET  /api/admin/users                          - All users
    GET  /api/initiatives                          - Initiative registry
    GET  /api/initiatives/{id}/status              - Red/yellow/green indicators
    PUT  /api/initiatives/{id}/status              - Set indicators
    GET  /api/initiatives/{id}/forms/{gate}        - Gate form
    PUT  /api/initiatives/{id}/forms/{gate}        - Save / submit / request change
    PUT  /api/initiatives/{id}/forms/{gate}/approve
    PUT  /api/initiatives/{id}/forms/{gate}/reject
    GET  /api/gate-forms/pending                   - Review queue
    GET  /api/portfolio/summary                    - Portfolio rollup
    GET  /api/gates, /api/access-matrix            - Catalog and access rules
"""
from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatepilot import __version__
from gatepilot.catalog import load_catalog
from gatepilot.exceptions import GatePilotError
from gatepilot.models import GateCatalog
from gatepilot.storage import Repositories, build_repositories

from api.config import Settings
from api.deps import Services
from api.logging_config import configure_logging
from api.routes import forms, gates, initiatives, milestones, review, status, users
from api.schemas.responses import HealthResponse, ReadyResponse

logger = logging.getLogger("gatepilot.api")


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _error_body(request: Request, error: GatePilotError) -> dict:
    body = {"error": error.message, "code": error.code}
    if error.details:
        body["details"] = error.details
    if error.initiative_id:
        body["initiative_id"] = error.initiative_id
    body["request_id"] = _request_id(request)
    return jsonable_encoder(body)


def create_app(
    settings: Optional[Settings] = None,
    repositories: Optional[Repositories] = None,
    catalog: Optional[GateCatalog] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to Settings.from_env()
        repositories: Defaults to the backend named by settings
        catalog: Defaults to the catalog file named by settings

    Raises:
        ConfigurationError, CatalogLoadError, CatalogValidationError
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level_value)

    catalog = catalog or load_catalog(settings.gates_file)
    repositories = repositories or build_repositories(settings.storage, settings.database_path)
    services = Services.build(settings, catalog, repositories)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "GatePilot starting",
            extra={"request_id": "startup"},
        )
        logger.info(f"Version: {__version__}")
        logger.info(f"Gates loaded: {len(catalog)} (catalog v{catalog.version})")
        logger.info(f"Storage: {settings.storage}")
        logger.info(f"Docs enabled: {settings.docs_enabled}")
        yield
        logger.info("GatePilot shutting down")

    app = FastAPI(
        title="GatePilot",
        description="L-Gate portfolio governance",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.docs_enabled else None,
        redoc_url="/redoc" if settings.docs_enabled else None,
        openapi_url="/openapi.json" if settings.docs_enabled else None,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Middleware
    # =========================================================================

    @app.middleware("http")
    async def limit_request_size(request: Request, call_next):
        """Limit request body size."""
        if request.method in ("POST", "PUT", "PATCH"):
            content_length = request.headers.get("content-length", "")
            if content_length.isdigit() and int(content_length) > settings.max_request_size:
                return JSONResponse(
                    status_code=413,
                    content={
                        "error": "Request too large",
                        "code": "GP_REQUEST_TOO_LARGE",
                        "details": {"max_size": settings.max_request_size},
                        "request_id": _request_id(request),
                    },
                )
        return await call_next(request)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        """Add request ID to all requests."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start_time = time.time()

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        logger.debug(
            "Request complete",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": int((time.time() - start_time) * 1000),
            },
        )
        return response

    # =========================================================================
    # Error Handlers
    # =========================================================================

    @app.exception_handler(GatePilotError)
    async def handle_domain_error(request: Request, exc: GatePilotError):
        extra = {
            "request_id": _request_id(request),
            "user_id": getattr(request.state, "user_id", None),
            "error_code": exc.code,
        }
        if exc.initiative_id:
            extra["initiative_id"] = exc.initiative_id
        if exc.http_status >= 500:
            logger.error(str(exc), extra=extra)
        else:
            logger.warning(str(exc), extra=extra)
        return JSONResponse(status_code=exc.http_status, content=_error_body(request, exc))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in exc.errors()
        ]
        logger.warning(
            "Request validation failed",
            extra={"request_id": _request_id(request), "error_code": "GP_INVALID_INPUT"},
        )
        return JSONResponse(
            status_code=400,
            content=jsonable_encoder({
                "error": "Request validation failed",
                "code": "GP_INVALID_INPUT",
                "details": {"errors": errors},
                "request_id": _request_id(request),
            }),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            f"Unhandled error: {exc}",
            exc_info=exc,
            extra={"request_id": _request_id(request)},
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "code": "GP_INTERNAL_ERROR",
                "request_id": _request_id(request),
            },
        )

    # =========================================================================
    # Health Endpoints
    # =========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check():
        """
        Liveness probe - checks if process is alive.
        Always returns quickly. Use /ready for full readiness check.
        """
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            version=__version__,
        )

    @app.get("/ready", response_model=ReadyResponse, tags=["Health"])
    def readiness_check():
        """
        Readiness probe - checks if service is ready to accept requests.

        Checks:
        - Gate catalog loaded
        - Storage reachable
        """
        try:
            storage_ok = services.repos.ping()
        except Exception as e:
            logger.error(f"Storage ping failed: {e}")
            storage_ok = False

        checks = {
            "catalog_loaded": len(services.catalog) > 0,
            "storage_reachable": storage_ok,
        }
        ready = all(checks.values())
        payload = ReadyResponse(
            status="ready" if ready else "not_ready",
            timestamp=datetime.now(timezone.utc).isoformat(),
            checks=checks,
            version=__version__,
            catalog_version=services.catalog.version,
            storage=settings.storage,
        )
        if not ready:
            return JSONResponse(status_code=503, content=jsonable_encoder(payload))
        return payload

    # Include routers
    app.include_router(users.router)
    app.include_router(initiatives.router)
    app.include_router(status.router)
    app.include_router(forms.router)
    app.include_router(milestones.router)
    app.include_router(gates.router)
    app.include_router(review.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

"""Taskmaster - personal task manager API."""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from taskmaster.clock import Clock, utcnow
from taskmaster.config import Settings, get_settings
from taskmaster.database import Base, build_engine, build_session_factory
from taskmaster.dependencies import SessionValidator
from taskmaster.errors import envelope, register_exception_handlers
from taskmaster.models.task import Task  # noqa: F401
from taskmaster.models.user import User  # noqa: F401
from taskmaster.rate_limit import limiter
from taskmaster.routers import auth_router, tasks_router
from taskmaster.services.auth import AuthService
from taskmaster.services.task import TaskService

logger = logging.getLogger("taskmaster")


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Cache-Control"] = "no-store"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 64 * 1024  # 64KB, JSON bodies only

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content=envelope(False, "Request body too large"))
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PREFIXES = ("/api/auth/", "/api/task/")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and path.startswith(self.AUDIT_PREFIXES):
            # Reset tokens travel in the path; never write them to the log.
            if path.startswith("/api/auth/reset-password/"):
                path = "/api/auth/reset-password/<token>"
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


def create_app(settings: Settings | None = None, clock: Clock = utcnow) -> FastAPI:
    """Build the application with its services wired from settings."""
    settings = settings or get_settings()
    for warning in settings.validate():
        logger.warning("Config: %s", warning)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
        if not settings.is_production:
            Base.metadata.create_all(bind=engine)
        app.state.session_factory = build_session_factory(engine)
        logger.info("Taskmaster started (%s)", settings.APP_ENV)
        try:
            yield
        finally:
            engine.dispose()
            logger.info("Taskmaster stopped")

    app = FastAPI(title="Taskmaster", version="0.1.0", lifespan=lifespan)
    app.state.limiter = limiter
    app.state.settings = settings

    auth_service = AuthService.from_settings(settings, clock=clock)
    app.state.auth_service = auth_service
    app.state.session_validator = SessionValidator(auth_service.jwt_service)
    app.state.task_service = TaskService()

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(AuditLogMiddleware)

    register_exception_handlers(app)

    # --- Rate limit error handler ---
    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
        """Handle rate limit exceeded."""
        body = envelope(False, "Rate limit exceeded. Try again later.")
        body["error"] = "rate_limited"
        return JSONResponse(status_code=429, content=body)

    app.include_router(auth_router)
    app.include_router(tasks_router)

    # --- Health check ---
    @app.get("/api/health")
    def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "ok", "app": "taskmaster", "version": "0.1.0"}

    return app


logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()

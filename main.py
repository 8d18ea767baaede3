"""Accounts - user registration, authentication and profile API."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.dependencies import authenticate_request
from app.exceptions import AppError
from app.i18n import get_locale, translate
from app.rate_limit import limiter
from app.routers import auth_router, password_reset_router, users_router
from app.services.files import get_file_service
from app.services.token_cleanup import TokenCleanupScheduler

# Logging
logger = logging.getLogger("accounts")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

ONE_YEAR_SECONDS = 365 * 24 * 60 * 60


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    for warning in settings.validate():
        logger.warning("Config: %s", warning)
    get_file_service().create_folders()

    scheduler: TokenCleanupScheduler | None = None
    if settings.TOKEN_CLEANUP_ENABLED:
        scheduler = TokenCleanupScheduler().start()
    app.state.token_cleanup = scheduler
    yield
    if scheduler:
        await scheduler.stop()
    app.state.token_cleanup = None


# Every route resolves the bearer token, public ones included.
app = FastAPI(
    title="Accounts",
    version="0.1.0",
    lifespan=lifespan,
    dependencies=[Depends(authenticate_request)],
)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = ("/api/1.0/users", "/api/1.0/auth", "/api/1.0/logout", "/api/1.0/user/password")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and path.startswith(self.AUDIT_PATHS):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


class ProfileImageFiles(StaticFiles):
    """Read-only profile images, cacheable for a year."""

    def file_response(self, *args, **kwargs) -> Response:
        response = super().file_response(*args, **kwargs)
        response.headers["Cache-Control"] = f"public, max-age={ONE_YEAR_SECONDS}"
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AuditLogMiddleware)

# Profile images
get_file_service().create_folders()
app.mount("/images", ProfileImageFiles(directory=get_settings().profile_folder), name="images")

# API routers
app.include_router(users_router)
app.include_router(password_reset_router)
app.include_router(auth_router)


def error_body(request: Request, message_key: str, validation_errors: dict[str, str] | None = None) -> dict:
    """Uniform error body with localized messages."""
    locale = get_locale(request)
    body = {
        "path": request.url.path,
        "timestamp": int(time.time() * 1000),
        "message": translate(message_key, locale),
    }
    if validation_errors:
        body["validationErrors"] = {field: translate(key, locale) for field, key in validation_errors.items()}
    return body


# --- Exception handlers ---
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Translate typed service failures into HTTP responses."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc.__cause__)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.message_key, exc.validation_errors),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies get the same shape as field validation failures."""
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        if loc:
            errors.setdefault(loc[-1], "validation_failure")
    return JSONResponse(status_code=400, content=error_body(request, "validation_failure", errors or None))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Handle rate limit exceeded."""
    return JSONResponse(status_code=429, content=error_body(request, "rate_limit_exceeded"))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep the error shape for framework-raised HTTP errors."""
    body = error_body(request, "internal_error")
    body["message"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, answer 500 in the usual shape."""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body(request, "internal_error"))


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "accounts", "version": "0.1.0"}

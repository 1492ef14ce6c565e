"""
FastAPI Application Factory

Builds the storefront API: store handle on `app.state`, CORS, request
logging, optional Redis rate limiting, the error envelope and the routers.

Usage:
    uvicorn services.api.app:create_app --factory
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.api.routers import files, orders, products, users
from utils import responses
from utils.config import settings
from utils.db import Store
from utils.errors import AppError, RateLimited
from utils.ratelimit import API_RULE, AUTH_RULE, RateLimiter, RateLimitRule

logger = logging.getLogger(__name__)

AUTH_PATHS = {("POST", "/api/users/login"), ("POST", "/api/users")}


def _rule_for(request: Request) -> Optional[RateLimitRule]:
    if (request.method, request.url.path.rstrip("/")) in AUTH_PATHS:
        return AUTH_RULE
    if request.url.path.startswith("/api"):
        return API_RULE
    return None


def _validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return errors


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        log_extra = {"path": request.url.path, "method": request.method, "status": exc.status_code}
        if exc.status_code >= 500:
            logger.error(exc.message, extra=log_extra, exc_info=exc.__cause__ or exc)
        else:
            logger.warning(exc.message, extra=log_extra)
        return responses.from_app_error(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = _validation_errors(exc)
        logger.warning("Validation failed", extra={"path": request.url.path, "errors": errors})
        return responses.error("Validation failed", 400, errors=errors)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return responses.error(message, exc.status_code)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(
            "Unhandled error",
            extra={"path": request.url.path, "method": request.method},
            exc_info=exc,
        )
        return responses.error("Internal server error", 500, exc=exc)


def create_app(store: Optional[Store] = None, rate_limiter: Optional[RateLimiter] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        store: Store handle, defaults to one on settings.SQLITE_PATH
        rate_limiter: Limiter to enforce; one is created when
            RATE_LIMIT_ENABLED is set and none is given

    Returns:
        Configured FastAPI instance
    """
    store = store or Store()
    if rate_limiter is None and settings.RATE_LIMIT_ENABLED:
        rate_limiter = RateLimiter()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.init_schema()
        logger.info(
            "API starting",
            extra={"environment": settings.ENVIRONMENT, "db_path": store.path, "rate_limit": rate_limiter is not None},
        )
        yield
        if rate_limiter is not None:
            await rate_limiter.close()
        logger.info("API stopped")

    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.state.store = store
    app.state.rate_limiter = rate_limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        limiter = request.app.state.rate_limiter
        rule = _rule_for(request) if limiter is not None else None
        if rule is None:
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        result = await limiter.hit(rule, client_id)
        if not result.allowed:
            logger.warning("Rate limit exceeded", extra={"scope": rule.scope, "client": client_id})
            response = responses.from_app_error(RateLimited(rule.message))
        else:
            response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(result.limit)
        response.headers["RateLimit-Remaining"] = str(result.remaining)
        response.headers["RateLimit-Reset"] = str(result.reset_seconds)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "Request handled",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response

    register_error_handlers(app)

    @app.get("/health", tags=["health"])
    def health():
        healthy = app.state.store.ping()
        data = {
            "status": "healthy" if healthy else "unhealthy",
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }
        if healthy:
            return responses.success(data, "Service is healthy")
        return responses.error("Database unavailable", 503, data=data)

    for router in (users.router, products.router, orders.router, files.router):
        app.include_router(router)

    return app

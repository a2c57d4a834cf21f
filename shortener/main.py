"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes
- Middleware (logging, CORS)
- Exception handlers mapping domain errors to HTTP responses
- Application metadata
"""

import logging
import math
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shortener.api import endpoints
from shortener.core.exceptions import (
    AllocationExhaustedError,
    AuthenticationRequiredError,
    DatabaseError,
    DuplicateCodeError,
    ForbiddenError,
    InvalidURLError,
    LinkExpiredError,
    RateLimitedError,
    ShortCodeNotFoundError,
)
from shortener.core.rate_limit import limiter
from shortener.core.setting import settings
from shortener.db.session import init_models
from shortener.middleware.logging import add_logging_middleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="URL Shortener Service",
    description="Short links with owner dashboards, expiry and rate-limited creation",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI documentation
    redoc_url="/redoc",  # ReDoc documentation
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


@app.exception_handler(InvalidURLError)
async def invalid_url_handler(request: Request, exc: InvalidURLError) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return error_response(status.HTTP_400_BAD_REQUEST, f"Invalid request: {messages}")


@app.exception_handler(RateLimitedError)
async def rate_limited_handler(request: Request, exc: RateLimitedError) -> JSONResponse:
    response = error_response(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "Rate limit exceeded",
        resetTime=exc.reset_at.isoformat(),
    )
    seconds_left = (exc.reset_at - datetime.now(timezone.utc)).total_seconds()
    response.headers["Retry-After"] = str(max(1, math.ceil(seconds_left)))
    return response


@app.exception_handler(ShortCodeNotFoundError)
async def not_found_handler(request: Request, exc: ShortCodeNotFoundError) -> JSONResponse:
    return error_response(status.HTTP_404_NOT_FOUND, str(exc))


@app.exception_handler(LinkExpiredError)
async def expired_handler(request: Request, exc: LinkExpiredError) -> JSONResponse:
    return error_response(status.HTTP_410_GONE, str(exc))


@app.exception_handler(ForbiddenError)
async def forbidden_handler(request: Request, exc: ForbiddenError) -> JSONResponse:
    return error_response(status.HTTP_403_FORBIDDEN, str(exc))


@app.exception_handler(AuthenticationRequiredError)
async def authentication_handler(request: Request, exc: AuthenticationRequiredError) -> JSONResponse:
    return error_response(status.HTTP_401_UNAUTHORIZED, str(exc))


@app.exception_handler(AllocationExhaustedError)
@app.exception_handler(DuplicateCodeError)
async def allocation_handler(request: Request, exc: Exception) -> JSONResponse:
    # Details stay in the logs; callers only learn that creation failed
    logger.error(f"Short code allocation failed: {exc}")
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Could not create a short URL, please retry later")


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error(f"{exc} ({exc.original_error!r})")
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Storage temporarily unavailable")


# Health endpoints defined before router to match before catch-all route
@app.get("/", tags=["Health"])
async def root():
    """Service metadata."""
    return {
        "message": "URL Shortener Service",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["URL Shortener"])


@app.on_event("startup")
async def startup_event():
    """Create missing tables on startup."""
    await init_models()
    logger.info(f"URL shortener started (env={settings.ENV_SETTING.value}, base_url={settings.BASE_URL})")

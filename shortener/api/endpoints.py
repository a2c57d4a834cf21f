"""
FastAPI Endpoints for URL Shortener Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Request parsing (Pydantic models)
- Resolving the principal and rate-limit key
- Scheduling background work
- Delegating to service layer

Domain exceptions raised by services are turned into HTTP responses by the
exception handlers registered in main.py.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.api.schemas import (
    ErrorResponse,
    LinkListResponse,
    LinkResponse,
    ShortenRequest,
    ShortenResponse,
)
from shortener.core.exceptions import ShortCodeNotFoundError
from shortener.core.principal import get_principal, require_principal
from shortener.core.rate_limit import RATE_LIMITS, limiter
from shortener.core.setting import RateLimitKeyStrategy, settings
from shortener.core.validators import sanitize_short_code
from shortener.db.models import as_utc, utcnow
from shortener.db.session import get_session, get_session_maker
from shortener.services.background_tasks import increment_click_count_background
from shortener.services.link_store import SQLLinkStore
from shortener.services.rate_limiter import RateLimiter, get_rate_limiter
from shortener.services.redirect_service import RedirectService
from shortener.services.shorten_service import ShortenService, build_short_url
from shortener.services.stats_service import StatsService

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    410: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def get_link_store(session: AsyncSession = Depends(get_session)) -> SQLLinkStore:
    return SQLLinkStore(session)


def get_rate_limit_key(request: Request, principal: Optional[str]) -> str:
    """
    Identity the shorten rate limit is counted against.

    With the principal strategy, signed-in callers are limited per account
    and anonymous callers per IP address. The address is the connection's
    peer, never X-Forwarded-For: behind a proxy, run uvicorn with
    --proxy-headers and --forwarded-allow-ips so the peer is the real client.
    """
    if settings.RATE_LIMIT_KEY_STRATEGY == RateLimitKeyStrategy.principal and principal:
        return f"user:{principal}"
    return f"ip:{get_remote_address(request)}"


def require_short_code(short_code: str) -> str:
    """Reject malformed codes before they reach the database."""
    sanitized_code = sanitize_short_code(short_code)
    if not sanitized_code:
        raise ShortCodeNotFoundError(short_code)
    return sanitized_code


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=status.HTTP_200_OK,
    responses=ERROR_RESPONSES,
    summary="Create a short URL",
    description="Takes a long URL and returns a shortened version with a unique code"
)
async def create_short_url(
    request: Request,
    response: Response,
    body: ShortenRequest,
    principal: Optional[str] = Depends(get_principal),
    store: SQLLinkStore = Depends(get_link_store),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
) -> ShortenResponse:
    """
    Create a new short URL from a long URL.

    Returns:
        ShortenResponse with code, shortUrl and rateLimitRemaining
    """
    service = ShortenService(store, rate_limiter, base_url=settings.BASE_URL)
    result = await service.shorten(
        body.url,
        client_key=get_rate_limit_key(request, principal),
        owner_id=principal,
        expires_in_seconds=body.expires_in_seconds,
    )

    response.headers["X-RateLimit-Limit"] = str(result.rate_limit)
    response.headers["X-RateLimit-Remaining"] = str(result.rate_limit_remaining)

    link = result.link
    return ShortenResponse(
        code=link.code,
        short_url=result.short_url,
        target_url=link.target_url,
        created_at=as_utc(link.created_at),
        expires_at=as_utc(link.expires_at),
        rate_limit_remaining=result.rate_limit_remaining,
    )


@router.get(
    "/links",
    response_model=LinkListResponse,
    responses=ERROR_RESPONSES,
    summary="List the caller's links",
    description="Returns every link owned by the authenticated caller, newest first"
)
@limiter.limit(RATE_LIMITS["links"])
async def list_links(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    principal: str = Depends(require_principal),
    store: SQLLinkStore = Depends(get_link_store),
) -> LinkListResponse:
    now = utcnow()
    links = await store.list_by_owner(principal)
    return LinkListResponse(
        links=[
            LinkResponse(
                code=link.code,
                short_url=build_short_url(settings.BASE_URL, link.code),
                target_url=link.target_url,
                click_count=link.click_count,
                created_at=as_utc(link.created_at),
                expires_at=as_utc(link.expires_at),
                is_expired=link.is_expired(now),
            )
            for link in links
        ]
    )


@router.get(
    "/links/{short_code}",
    response_model=LinkResponse,
    responses=ERROR_RESPONSES,
    summary="Get link statistics",
    description="Returns click count and lifecycle timestamps for one of the caller's links"
)
@limiter.limit(RATE_LIMITS["links"])
async def get_link_stats(
    short_code: str,
    request: Request,
    principal: str = Depends(require_principal),
    store: SQLLinkStore = Depends(get_link_store),
) -> LinkResponse:
    stats_service = StatsService(store, base_url=settings.BASE_URL)
    stats = await stats_service.get_stats(require_short_code(short_code), principal)
    return LinkResponse(**stats)


@router.delete(
    "/links/{short_code}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
    summary="Delete a link",
    description="Deletes one of the caller's links; its code is never reissued"
)
@limiter.limit(RATE_LIMITS["delete"])
async def delete_link(
    short_code: str,
    request: Request,
    principal: str = Depends(require_principal),
    store: SQLLinkStore = Depends(get_link_store),
) -> Response:
    await store.delete(require_short_code(short_code), principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{short_code}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    responses=ERROR_RESPONSES,
    summary="Redirect to original URL",
    description="Takes a short code and redirects to the original long URL"
)
async def redirect_to_url(
    short_code: str,
    background_tasks: BackgroundTasks,
    store: SQLLinkStore = Depends(get_link_store),
    session_maker: async_sessionmaker = Depends(get_session_maker),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    Raises:
        ShortCodeNotFoundError (404): If short code is malformed, unknown or deleted
        LinkExpiredError (410): If the link has expired
    """
    redirect_service = RedirectService(store)
    link = await redirect_service.resolve(require_short_code(short_code))

    background_tasks.add_task(
        increment_click_count_background,
        short_code=link.code,
        session_maker=session_maker
    )

    return RedirectResponse(
        url=link.target_url,
        status_code=status.HTTP_302_FOUND
    )

"""
Principal Provider

Identity issuance (sessions, OAuth, API keys) happens upstream of this
service: an auth gateway or session middleware authenticates the caller
and forwards the resulting principal in a trusted header. The core treats
the principal as an opaque, comparable token.
"""

from typing import Optional

from fastapi import Depends, Request

from shortener.core.exceptions import AuthenticationRequiredError
from shortener.core.setting import settings

MAX_PRINCIPAL_LENGTH = 255


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For header.
    The header is client-controlled, so the result is for access logs only.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


def get_principal(request: Request) -> Optional[str]:
    """Return the authenticated principal for the request, or None when anonymous."""
    principal = request.headers.get(settings.PRINCIPAL_HEADER)
    if principal is None:
        return None

    principal = principal.strip()
    if not principal or len(principal) > MAX_PRINCIPAL_LENGTH:
        return None
    return principal


def require_principal(principal: Optional[str] = Depends(get_principal)) -> str:
    """Dependency for endpoints that only make sense for a signed-in caller."""
    if principal is None:
        raise AuthenticationRequiredError()
    return principal

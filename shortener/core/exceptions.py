"""
Custom Exceptions

This module defines the exception taxonomy of the shortener service.
Services raise these; the API layer maps each one to an HTTP status
through exception handlers registered in main.py.

Categories:
- User-correctable: InvalidURLError
- Transient: RateLimitedError, DatabaseError
- Operational: AllocationExhaustedError
- Terminal per request: ShortCodeNotFoundError, LinkExpiredError
- Authorization: ForbiddenError, AuthenticationRequiredError
"""

from datetime import datetime
from typing import Optional


class URLShortenerException(Exception):
    """Base exception for URL shortener service."""
    pass


class InvalidURLError(URLShortenerException):
    """Raised when URL validation fails."""

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class RateLimitedError(URLShortenerException):
    """Raised when a client has used up its shorten quota for the current window."""

    def __init__(self, client_key: str, reset_at: datetime):
        self.client_key = client_key
        self.reset_at = reset_at
        super().__init__(f"Rate limit exceeded, retry after {reset_at.isoformat()}")


class AllocationExhaustedError(URLShortenerException):
    """Raised when every allocation attempt collided with an existing code."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a free short code after {attempts} attempts")


class DuplicateCodeError(URLShortenerException):
    """Raised when the storage layer rejects an insert because the code is taken."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' already exists")


class ShortCodeNotFoundError(URLShortenerException):
    """Raised when a short code is not found in the database."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class LinkExpiredError(URLShortenerException):
    """Raised when a short code exists but its expiry has passed."""

    def __init__(self, short_code: str, expired_at: Optional[datetime] = None):
        self.short_code = short_code
        self.expired_at = expired_at
        super().__init__(f"Short code '{short_code}' has expired")


class ForbiddenError(URLShortenerException):
    """Raised when a principal acts on a link it does not own."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Not allowed to modify short code '{short_code}'")


class AuthenticationRequiredError(URLShortenerException):
    """Raised when an endpoint needs a principal and the request carries none."""

    def __init__(self):
        super().__init__("Authentication required")


class DatabaseError(URLShortenerException):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")

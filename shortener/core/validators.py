"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.
These functions help prevent security issues and ensure data integrity.

Security Considerations:
- Only http/https targets are accepted (no javascript:, data:, file: redirects)
- Short codes are checked against the configured alphabet before any lookup
- Length limits prevent oversized inputs reaching the database
"""

from typing import Optional
from urllib.parse import urlparse

from shortener.core.setting import settings

ALLOWED_SCHEMES = frozenset({"http", "https"})

# Upper bound for codes accepted from request paths; generated codes are shorter.
MAX_SHORT_CODE_LENGTH = 32

MALICIOUS_PATTERNS = ("javascript:", "data:", "file:", "vbscript:")


def sanitize_short_code(short_code: str, alphabet: Optional[str] = None) -> Optional[str]:
    """
    Sanitize and validate short code format.

    Args:
        short_code: The short code to sanitize
        alphabet: Allowed characters (defaults to the configured code alphabet)

    Returns:
        Sanitized short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    short_code = short_code.strip()

    if not short_code or len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    allowed = set(alphabet or settings.SHORT_CODE_ALPHABET)
    if any(char not in allowed for char in short_code):
        return None

    return short_code


def validate_url_length(url: str, max_length: int = 2048) -> bool:
    """
    Validate URL length to prevent DoS attacks.

    Args:
        url: The URL to validate
        max_length: Maximum allowed length (default: 2048 per RFC 7230)

    Returns:
        True if URL length is valid, False otherwise
    """
    return bool(url) and len(url) <= max_length


def url_rejection_reason(url: str, max_length: Optional[int] = None) -> Optional[str]:
    """
    Explain why a target URL cannot be shortened.

    Returns:
        None when the URL is a well-formed absolute http(s) URL,
        otherwise a short human-readable reason
    """
    if not url or not isinstance(url, str):
        return "URL is required"

    if not validate_url_length(url, max_length or settings.MAX_URL_LENGTH):
        return "URL is too long"

    if any(char.isspace() for char in url):
        return "URL must not contain whitespace"

    try:
        result = urlparse(url)
        hostname = result.hostname
    except ValueError:
        return "Invalid URL format"

    if not result.scheme:
        return "URL must be absolute"

    if result.scheme.lower() not in ALLOWED_SCHEMES:
        return "URL must use http:// or https://"

    if not result.netloc or not hostname:
        return "URL must include a host"

    if hostname != "localhost" and "." not in hostname:
        return "URL host must be a domain name"

    url_lower = url.lower()
    if any(pattern in url_lower[len(result.scheme) + 1:] for pattern in MALICIOUS_PATTERNS):
        return "URL contains a disallowed scheme"

    return None


def is_valid_url(url: str) -> bool:
    """Validate URL format and scheme (http/https only)."""
    return url_rejection_reason(url) is None

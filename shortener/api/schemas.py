"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

JSON bodies use camelCase field names (shortUrl, rateLimitRemaining, ...);
the Python attributes stay snake_case and either form is accepted on input.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base model serializing to camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShortenRequest(APIModel):
    """Request model for URL shortening endpoint."""
    url: str = Field(..., description="The long URL to shorten")
    expires_in_seconds: Optional[int] = Field(
        default=None,
        description="Optional lifetime of the link in seconds"
    )


class ShortenResponse(APIModel):
    """Response model for URL shortening endpoint."""
    code: str = Field(..., description="The generated short code")
    short_url: str = Field(..., description="The complete short URL")
    target_url: str = Field(..., description="The original long URL")
    created_at: datetime
    expires_at: Optional[datetime] = None
    rate_limit_remaining: int = Field(..., description="Shorten requests left in the current window")


class LinkResponse(APIModel):
    """One link as shown on the owner's dashboard."""
    code: str
    short_url: str
    target_url: str
    click_count: int
    created_at: datetime
    expires_at: Optional[datetime] = None
    is_expired: bool


class LinkListResponse(APIModel):
    """Response model for the dashboard listing."""
    links: list[LinkResponse]


class ErrorResponse(APIModel):
    """Body of every error response."""
    error: str
    reset_time: Optional[datetime] = None

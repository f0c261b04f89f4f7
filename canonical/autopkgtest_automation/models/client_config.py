"""Configuration models for the autopkgtest HTTP client."""

from pydantic import BaseModel, Field

from canonical.autopkgtest_automation.markers import DEFAULT_BASE_URL


class ClientConfig(BaseModel):
    """Connection settings for autopkgtest.ubuntu.com."""

    base_url: str = Field(
        default=DEFAULT_BASE_URL, description="autopkgtest web UI base URL"
    )
    request_timeout: float = Field(
        default=30.0, gt=0, description="Per-request timeout in seconds"
    )
    max_redirects: int = Field(
        default=10, ge=0, description="Maximum redirects followed per request"
    )


class SessionCookie(BaseModel):
    """A pre-obtained cookie used to authenticate requests."""

    name: str = Field(default="session", description="Cookie name")
    value: str = Field(..., description="Cookie value")
    domain: str = Field(
        default="autopkgtest.ubuntu.com", description="Domain the cookie is scoped to"
    )
    path: str = Field(default="/", description="Cookie path")
    secure: bool = Field(default=True, description="Only sent over HTTPS")
    http_only: bool = Field(default=True, description="HttpOnly flag")

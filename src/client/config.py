"""Client configuration with environment variable loading.

Pydantic-based configuration for the backend API and reply streaming.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file
load_dotenv()


def _optional_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


class ClientConfig(BaseModel):
    """Configuration for the liquidity chat client.

    Attributes:
        api_base_url: Backend base URL, without trailing slash.
        api_token: Optional bearer token to seed the credential store.
        request_timeout: Timeout in seconds for REST requests.
        reply_timeout: Seconds to wait for a terminal stream event before
            the controller forces the exchange to finish.
        session_list_limit: Number of recent sessions shown in the sidebar.
    """

    # default_factory values come from the environment
    model_config = ConfigDict(validate_default=True)

    api_base_url: str = Field(
        default_factory=lambda: os.getenv("API_URL", "http://localhost:3000"),
        description="Backend base URL",
    )
    api_token: str | None = Field(
        default_factory=lambda: os.getenv("API_TOKEN") or None,
        description="Bearer token for authenticated requests",
    )
    request_timeout: float = Field(
        default_factory=lambda: _optional_float("REQUEST_TIMEOUT", 60.0),
        gt=0,
        description="Timeout for REST requests in seconds",
    )
    reply_timeout: float = Field(
        default_factory=lambda: _optional_float("REPLY_TIMEOUT", 90.0),
        gt=0,
        description="Fallback timeout for streamed replies in seconds",
    )
    session_list_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of recent sessions to list",
    )

    @field_validator("api_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Strip whitespace and trailing slashes, require an http(s) URL."""
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("API_URL must start with http:// or https://")
        return v


def get_client_config() -> ClientConfig:
    """Create client configuration from environment.

    Returns:
        Configured ClientConfig instance.

    Raises:
        ValueError: If API_URL is not an http(s) URL.
    """
    limit = os.getenv("SESSION_LIST_LIMIT")
    if limit:
        return ClientConfig(session_list_limit=int(limit))
    return ClientConfig()

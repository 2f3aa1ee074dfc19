"""Client configuration with environment variable loading.

Pydantic-based configuration for the fact and chat clients.
Endpoints, retry budget and timeouts can all be overridden from .env.
"""

import os
from urllib.parse import urlparse

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_API_URL = "https://one-fact-api.fly.dev/api/v1/facts"
DEFAULT_CHAT_URL = "https://one-fact-api.fly.dev/api/v1/chat"


class ClientConfig(BaseModel):
    """Configuration for FactClient and ChatClient.

    Attributes:
        api_base_url: Base URL of the fact endpoints.
        chat_api_url: URL of the chat endpoint (streaming lives under /stream).
        max_retries: Retries after the first attempt (3 means 4 attempts).
        retry_base_delay: Seconds; the delay before retry n is n times this.
        request_timeout: Connect/read/write timeout for a single attempt.
        resource_timeout: Total time budget for a single attempt.
    """

    api_base_url: str = Field(
        default_factory=lambda: os.getenv("ONE_FACT_API_URL", DEFAULT_API_URL),
        description="Base URL of the fact endpoints",
    )
    chat_api_url: str = Field(
        default_factory=lambda: os.getenv("ONE_FACT_CHAT_URL", DEFAULT_CHAT_URL),
        description="Chat endpoint URL",
    )
    max_retries: int = Field(
        default_factory=lambda: int(os.getenv("ONE_FACT_MAX_RETRIES", "3")),
        ge=0,
        le=10,
        description="Retries beyond the first attempt",
    )
    retry_base_delay: float = Field(
        default_factory=lambda: float(os.getenv("ONE_FACT_RETRY_DELAY", "1.0")),
        ge=0.0,
        description="Base delay in seconds for linear backoff",
    )
    request_timeout: float = Field(
        default_factory=lambda: float(os.getenv("ONE_FACT_REQUEST_TIMEOUT", "10.0")),
        gt=0.0,
        description="Connect/read timeout per attempt",
    )
    resource_timeout: float = Field(
        default_factory=lambda: float(os.getenv("ONE_FACT_RESOURCE_TIMEOUT", "30.0")),
        gt=0.0,
        description="Total time budget per attempt",
    )

    @field_validator("api_base_url", "chat_api_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an absolute http(s) URL and strip trailing slashes."""
        v = v.strip().rstrip("/")
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Expected an absolute http(s) URL, got {v!r}")
        return v

    @property
    def timeout(self) -> httpx.Timeout:
        """httpx timeout for a single attempt."""
        return httpx.Timeout(self.request_timeout)


def get_client_config() -> ClientConfig:
    """Create client configuration from environment.

    Returns:
        Configured ClientConfig instance.

    Raises:
        ValueError: If an environment override is malformed.
    """
    return ClientConfig()

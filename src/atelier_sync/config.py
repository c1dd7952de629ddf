import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import httpx
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Remote workshop API
    api_url: str = os.getenv("ATELIER_API_URL", "http://localhost:8000")
    api_token: str | None = os.getenv("ATELIER_API_TOKEN")
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "30"))

    # Query cache
    stale_time: float = float(os.getenv("QUERY_STALE_TIME", "0"))
    gc_time: float = float(os.getenv("QUERY_GC_TIME", "300"))  # 5 minutes
    retry: int = int(os.getenv("QUERY_RETRY", "0"))
    gc_interval: float = float(os.getenv("QUERY_GC_INTERVAL", "60"))

    # Cursor lists
    cursor_page_size: int = int(os.getenv("CURSOR_PAGE_SIZE", "20"))
    search_debounce_ms: int = int(os.getenv("SEARCH_DEBOUNCE_MS", "500"))

    # Console API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8080"))
    api_reload: bool = os.getenv("API_RELOAD", "false").lower() == "true"

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def search_debounce(self) -> float:
        """Debounce window in seconds."""
        return self.search_debounce_ms / 1000

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.stale_time < 0 or self.gc_time < 0:
            raise ValueError("QUERY_STALE_TIME and QUERY_GC_TIME must not be negative")

        if self.gc_interval <= 0:
            raise ValueError("QUERY_GC_INTERVAL must be positive")

        if self.retry < 0:
            raise ValueError("QUERY_RETRY must not be negative")

        if self.cursor_page_size < 1:
            raise ValueError("CURSOR_PAGE_SIZE must be at least 1")

        if not 300 <= self.search_debounce_ms <= 500:
            raise ValueError(
                f"SEARCH_DEBOUNCE_MS must be between 300 and 500, got {self.search_debounce_ms}"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for the console process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def get_http_client(
    base_url: str | None = None,
    token: str | None = None,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an async HTTP client for the workshop API.

    Arguments left as None fall back to settings.
    """
    headers = {"Content-Type": "application/json"}
    token = token if token is not None else settings.api_token
    if token:
        headers["Authorization"] = f"Bearer {token}"

    return httpx.AsyncClient(
        base_url=base_url or settings.api_url,
        headers=headers,
        timeout=timeout or settings.request_timeout,
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
        transport=transport,
    )

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Backend location
    # Empty base URL means same-origin: URLs are root-relative ("/api/v1/...")
    api_base_url: str = os.getenv("API_BASE_URL", "").rstrip("/")
    api_path: str = os.getenv("API_PATH", "api")
    api_version: str = os.getenv("API_VERSION", "v1")

    # Request execution (seconds)
    request_timeout: float = float(os.getenv("API_REQUEST_TIMEOUT", "30"))
    request_retries: int = int(os.getenv("API_REQUEST_RETRIES", "3"))
    backoff_base: float = float(os.getenv("API_BACKOFF_BASE", "1.0"))

    # Response cache
    cache_ttl: float = float(os.getenv("API_CACHE_TTL", "300"))  # 5 minutes

    # Health check
    health_endpoint: str = os.getenv("API_HEALTH_ENDPOINT", "/actuator/health")
    health_timeout: float = float(os.getenv("API_HEALTH_TIMEOUT", "5"))

    # Tracing
    correlation_header: str = os.getenv("API_CORRELATION_HEADER", "X-Correlation-ID")

    # Entity store
    page_size: int = int(os.getenv("STORE_PAGE_SIZE", "20"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def api_prefix(self) -> str:
        """Get the versioned path prefix shared by every endpoint.

        Returns:
            Root-relative prefix such as "/api/v1"
        """
        return "/" + "/".join(part.strip("/") for part in (self.api_path, self.api_version) if part)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.request_timeout <= 0:
            raise ValueError("API_REQUEST_TIMEOUT must be greater than 0")

        if self.request_retries < 0:
            raise ValueError("API_REQUEST_RETRIES must be 0 or greater")

        if self.backoff_base < 0:
            raise ValueError("API_BACKOFF_BASE must be 0 or greater")

        if self.cache_ttl <= 0:
            raise ValueError("API_CACHE_TTL must be greater than 0")

        if self.health_timeout <= 0:
            raise ValueError("API_HEALTH_TIMEOUT must be greater than 0")

        if self.page_size <= 0:
            raise ValueError("STORE_PAGE_SIZE must be greater than 0")

        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(_LOG_LEVELS)}, got {self.log_level}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()

"""Configuration management for vodbridge."""

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_CACHE_TIME = 300


class Settings(BaseSettings):
    """Application settings with environment variable overrides.

    All settings can be overridden via environment variables
    prefixed with VODBRIDGE_ (e.g. VODBRIDGE_PORT, VODBRIDGE_CACHE_TIME).
    """

    model_config = {"env_prefix": "VODBRIDGE_"}

    # Server
    host: str = "127.0.0.1"
    port: int = 9094
    log_level: str = "INFO"

    # Upstream provider
    provider_name: str = "Eporner"  # shown as author / play source in records
    provider_base_url: str = "https://www.eporner.com/api/v2/video"
    provider_timeout: float = 10.0  # seconds, applied to every call
    provider_max_per_page: int = 60
    provider_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    )

    # Caching (HTTP headers only, nothing is stored server-side)
    cache_time: int | None = Field(
        default=None,
        description="Overrides the default response TTL in seconds",
    )

    # List action
    list_query: str = "popular"
    category_queries: dict[int, str] = Field(
        default_factory=lambda: {
            1: "european american",
            2: "japanese",
            3: "asian",
            4: "chinese",
        },
        description="Upstream keyword used when listing a given category id",
    )

    # Monitoring
    slow_operation_ms: float = 5000.0

    def get_cache_time(self) -> int:
        """Global default TTL in seconds."""
        if self.cache_time is not None and self.cache_time > 0:
            return self.cache_time
        return DEFAULT_CACHE_TIME


# Module-level singleton, imported throughout the app
settings = Settings()

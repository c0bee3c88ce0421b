"""Service configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")

MIN_FORECAST_DAYS = 7


class Settings(BaseSettings):
    """Environment-driven configuration for the SkyCast forecast service."""
    model_config = SettingsConfigDict(env_prefix="SKYCAST_", extra="ignore")

    upstream_source: str = "open_meteo"  # options: open_meteo
    geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"

    geocode_language: str = "fr"
    geocode_fallback_language: str = "en"
    geocode_count: int = 1
    geocode_ttl_seconds: int = 86400
    forecast_ttl_seconds: int = 600
    forecast_days: int = MIN_FORECAST_DAYS

    http_timeout_seconds: float = 8.0
    http_retries: int = 3
    http_backoff_factor: float = 0.2

    default_timezone: str = "Europe/Paris"
    default_hours: int = 12
    max_hours: int = 48

    cache_redis_url: str | None = None
    cache_prefix: str = "skycast:"

    debug: bool = False
    api_key: str | None = None
    log_level: str = "INFO"

    @field_validator("geocoding_url", "forecast_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize endpoint URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("forecast_days", mode="after")
    @classmethod
    def enforce_min_horizon(cls, v: int) -> int:
        """Keep at least a week of data so windows near midnight never under-run."""
        if v < MIN_FORECAST_DAYS:
            logger.warning(
                "forecast_days below minimum horizon; clamping",
                extra={"requested": v, "minimum": MIN_FORECAST_DAYS},
            )
            return MIN_FORECAST_DAYS
        return v

    @field_validator("geocode_language", "geocode_fallback_language", mode="after")
    @classmethod
    def lowercase_language(cls, v: str) -> str:
        """Language codes are sent lowercase upstream."""
        return v.strip().lower()


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")

"""Application configuration pulled from environment variables via pydantic."""
from pathlib import Path

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")

DEFAULT_REGIONS_PATH = Path(__file__).resolve().parent / "data" / "bd-districts.json"


class Settings(BaseSettings):
    """Environment-driven configuration for the district advisor service."""
    model_config = SettingsConfigDict(env_prefix="ADVISOR_", extra="ignore")

    weather_url: str = "https://api.open-meteo.com/v1/forecast"
    air_quality_url: str = "https://air-quality-api.open-meteo.com/v1/air-quality"
    open_meteo_api_key: str | None = None
    forecast_timezone: str = "Asia/Dhaka"
    local_utc_offset_hours: int = 6
    forecast_days: int = 7
    sample_hour: int = 14
    top_n: int = 10
    ranking_ttl_seconds: int = 1800
    refresh_interval_seconds: int = 1800
    http_timeout_seconds: float = 10.0
    travel_window_days: int = 7
    regions_path: Path = DEFAULT_REGIONS_PATH
    api_key: str | None = None
    enable_cache_warmup: bool = True
    log_level: str = "INFO"

    @field_validator("weather_url", "air_quality_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("sample_hour", mode="after")
    @classmethod
    def check_sample_hour(cls, v: int) -> int:
        if not 0 <= v <= 23:
            raise ValueError("sample_hour must be between 0 and 23")
        return v

    @field_validator(
        "forecast_days",
        "top_n",
        "ranking_ttl_seconds",
        "refresh_interval_seconds",
        "http_timeout_seconds",
        mode="after",
    )
    @classmethod
    def check_positive(cls, v: float, info: ValidationInfo) -> float:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return v

    @field_validator("travel_window_days", mode="after")
    @classmethod
    def check_travel_window(cls, v: int) -> int:
        if v < 0:
            raise ValueError("travel_window_days must not be negative")
        return v


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")

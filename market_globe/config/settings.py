import os
from functools import lru_cache

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseModel):
    FMP_BASE_URL: str = "https://financialmodelingprep.com"
    FMP_API_KEY: str | None = None
    ALPHA_VANTAGE_BASE_URL: str = "https://www.alphavantage.co"
    ALPHA_VANTAGE_API_KEY: str | None = None

    QUOTE_FRESHNESS_SEC: float = Field(default=15.0, ge=0)
    QUOTE_REFRESH_INTERVAL_SEC: float = Field(default=120.0, gt=0)
    QUOTE_PRELOAD_SYNTHETIC: bool = False

    HTTP_TIMEOUT_SEC: float = Field(default=10.0, gt=0)
    HTTP_MAX_RETRIES: int = Field(default=2, ge=0)
    HTTP_RETRY_BASE_DELAY_SEC: float = Field(default=1.0, ge=0)

    BOARD_TRANSITION_RESET_SEC: float = Field(default=1.5, ge=0)

    @classmethod
    def from_env(cls) -> "Settings":
        raw = {
            "FMP_BASE_URL": os.getenv("FMP_BASE_URL"),
            "FMP_API_KEY": os.getenv("FMP_API_KEY"),
            "ALPHA_VANTAGE_BASE_URL": os.getenv("ALPHA_VANTAGE_BASE_URL"),
            "ALPHA_VANTAGE_API_KEY": os.getenv("ALPHA_VANTAGE_API_KEY"),
            "QUOTE_FRESHNESS_SEC": os.getenv("QUOTE_FRESHNESS_SEC"),
            "QUOTE_REFRESH_INTERVAL_SEC": os.getenv("QUOTE_REFRESH_INTERVAL_SEC"),
            "HTTP_TIMEOUT_SEC": os.getenv("HTTP_TIMEOUT_SEC"),
            "HTTP_MAX_RETRIES": os.getenv("HTTP_MAX_RETRIES"),
            "HTTP_RETRY_BASE_DELAY_SEC": os.getenv("HTTP_RETRY_BASE_DELAY_SEC"),
            "BOARD_TRANSITION_RESET_SEC": os.getenv("BOARD_TRANSITION_RESET_SEC"),
        }
        # unset or blank env falls back to the model defaults
        values = {k: v.strip() for k, v in raw.items() if v is not None and v.strip()}
        values["QUOTE_PRELOAD_SYNTHETIC"] = _env_bool("QUOTE_PRELOAD_SYNTHETIC")
        return cls.model_validate(values)

    @property
    def secondary_configured(self) -> bool:
        return bool(self.ALPHA_VANTAGE_API_KEY)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()

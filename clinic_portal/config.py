import logging
import os
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Portal settings."""

    model_config = SettingsConfigDict(
        env_prefix="CLINIC_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote clinic API
    api_base_url: str = Field(default="http://localhost:8080")

    # Profile storage holding the bearer credential
    token_store_path: str = Field(
        default=os.path.join(os.path.expanduser("~"), ".clinic_portal", "storage.json")
    )
    token_storage_key: str = Field(default="authToken")

    # Where exports are saved
    downloads_dir: str = Field(default=os.path.join(os.path.expanduser("~"), "Downloads"))

    # Revalidation timers (seconds)
    kpi_refresh_seconds: float = Field(default=30.0)
    trend_refresh_seconds: float = Field(default=60.0)
    list_refresh_seconds: float = Field(default=60.0)
    dedupe_interval_seconds: float = Field(default=2.0)

    log_level: str = Field(default="INFO")

    @property
    def api_root(self) -> str:
        return self.api_base_url.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

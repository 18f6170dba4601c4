"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

# Resolve .env from the project root regardless of CWD
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"


class Settings(BaseSettings):
    """Central configuration loaded from environment variables / .env file."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./asset_ops.db"

    # Pinterest (traffic source)
    pinterest_access_token: str = ""
    pinterest_api_url: str = "https://api.pinterest.com/v5"
    top_pins_window_days: int = 30
    top_pins_limit: int = 50
    sync_page_size: int = 25
    sync_max_pages: int = 10

    # Payhip (sales source)
    payhip_secret_token: str = ""

    # Reconciliation
    reconcile_interval_minutes: int = 0  # 0 disables the in-process loop
    reconcile_time_budget_seconds: Optional[float] = None

    # CORS / Frontend
    cors_origins: str = "http://localhost:3000"

    # General
    debug: bool = True

    model_config = {"env_file": str(_ENV_FILE), "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        In debug mode, returns ["*"] to allow any origin.
        """
        if self.debug:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()

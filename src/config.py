"""Application configuration loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "Peri"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Backend ---
    api_base_url: str = "http://localhost:3001"
    api_timeout_seconds: float = 30.0

    # --- Device storage ---
    storage_path: str = ".peri/device_store.json"

    # --- Session ---
    # Drop backend responses whose scope changed, or that a newer load beat.
    discard_stale_responses: bool = True

    # --- CORS ---
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "PERI_"}


@lru_cache
def get_settings() -> Settings:
    return Settings()

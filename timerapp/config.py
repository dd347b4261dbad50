"""Application configuration."""

import os

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    storage_backend: str = os.getenv("STORAGE_BACKEND", "sqlite")  # sqlite or memory
    storage_path: str = os.getenv("STORAGE_PATH", "data/timers.db")

    # Versioned keys so format changes don't collide with old data
    timers_key: str = "timerapp_timers_v3"
    timer_logs_key: str = "timerapp_timer_logs_v3"
    categories_key: str = "timerapp_categories_v3"

    # Timers
    tick_interval: float = float(os.getenv("TICK_INTERVAL", "1.0"))  # seconds
    default_categories: list[str] = ["Workout", "Study", "Break", "Work"]

    # Import / export
    export_dir: str = os.getenv("EXPORT_DIR", "data/exports")

    # Server
    server_host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    server_port: int = int(os.getenv("SERVER_PORT", "8000"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False


settings = Settings()

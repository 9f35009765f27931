"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "Trade Risk Monitor"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database (overrides the SQLite path when set)
    database_url: Optional[str] = None

    # SQLite (local persistence)
    sqlite_path: Optional[str] = None  # Defaults to ./data/riskmonitor.db
    sqlite_busy_timeout: float = 30.0  # Seconds a writer waits for the write lock

    # Redis (advisory evaluation locks)
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = True

    # Risk engine windows
    duplicate_cooldown_minutes: int = 10
    open_trades_cooldown_minutes: int = 30
    soft_rule_window_hours: int = 24
    duration_scan_window_hours: int = 24
    evaluation_lock_ttl_seconds: int = 60

    # Periodic evaluation
    periodic_evaluation_enabled: bool = False
    periodic_evaluation_interval_seconds: int = 300

    # Risk action trail (EMAIL/SLACK stubs, disable actions)
    risk_actions_log_path: Optional[str] = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

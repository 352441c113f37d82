"""
config.py

Centralized configuration management using pydantic-settings.
All modules must import settings from this file.
Direct os.getenv() calls are prohibited elsewhere.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings loaded from .env file."""

    # Logging
    log_level: str = "INFO"

    # Episode log storage
    activity_log_path: str = "activity_log.json"

    # Auto-apply master switch
    auto_apply_override_enabled: bool = False

    # Per-activity enablement
    auto_apply_walking_enabled: bool = False
    auto_apply_running_enabled: bool = False
    auto_apply_cycling_enabled: bool = False
    auto_apply_other_enabled: bool = False

    # Per-activity override preset names
    auto_apply_walking_override: str = ""
    auto_apply_running_override: str = ""
    auto_apply_cycling_override: str = ""
    auto_apply_other_override: str = ""

    # Durations (minutes)
    auto_apply_minimum_duration_minutes: int = 10
    auto_apply_stop_duration_minutes: int = 5

    # Override applier webhook (empty disables the HTTP call)
    override_webhook_url: str = ""

    # Sample source
    sensing_available: bool = True
    motion_permission_granted: bool = True
    sample_history_max_len: int = 500

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()

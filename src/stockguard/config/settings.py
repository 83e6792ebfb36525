"""Application settings and configuration management using Pydantic."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Main application settings combining all configuration sections."""

    # Environment and deployment
    environment: str = "development"
    debug: bool = False

    # Rule set
    rules_file: Optional[str] = None

    # Alert engine settings
    alert_retention_days: int = 90
    default_cooldown_minutes: int = 60
    default_low_stock_threshold: float = 5
    worker_concurrency: int = 8
    reconcile_interval_minutes: int = 30
    pending_notification_interval_minutes: int = 15
    cleanup_hour: int = 3

    # API settings
    endpoint_host: str = "0.0.0.0"
    endpoint_port: int = 8000
    api_reload: bool = False
    api_log_level: str = "INFO"

    # Database settings
    database_url: Optional[str] = None
    data_directory: str = "data"
    database_echo_sql: bool = False
    database_pool_pre_ping: bool = True
    database_pool_recycle: int = 3600

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "structured"  # 'structured' or 'plain'
    log_file_enabled: bool = False
    log_file_path: str = "data/stockguard.log"
    log_max_file_size: str = "10MB"
    log_backup_count: int = 5

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "STOCKGUARD_",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        valid_environments = ["development", "testing", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("alert_retention_days")
    @classmethod
    def validate_retention(cls, v):
        """Validate retention window is reasonable."""
        if v < 1 or v > 3650:
            raise ValueError("Alert retention must be between 1 and 3650 days")
        return v

    @field_validator("default_cooldown_minutes")
    @classmethod
    def validate_cooldown(cls, v):
        """Validate default notification cooldown."""
        if v < 0:
            raise ValueError("Cooldown cannot be negative")
        return v

    @field_validator("worker_concurrency")
    @classmethod
    def validate_concurrency(cls, v):
        """Validate worker pool size."""
        if v < 1 or v > 256:
            raise ValueError("Worker concurrency must be between 1 and 256")
        return v

    @field_validator("reconcile_interval_minutes", "pending_notification_interval_minutes")
    @classmethod
    def validate_interval(cls, v):
        """Validate job interval is reasonable."""
        if v < 1 or v > 1440:  # 1 minute to 24 hours
            raise ValueError("Job interval must be between 1 and 1440 minutes")
        return v

    @field_validator("cleanup_hour")
    @classmethod
    def validate_cleanup_hour(cls, v):
        """Validate cleanup hour of day."""
        if v < 0 or v > 23:
            raise ValueError("Cleanup hour must be between 0 and 23")
        return v

    @field_validator("endpoint_port")
    @classmethod
    def validate_port(cls, v):
        """Validate port number is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator("log_level", "api_log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Validate log format."""
        valid_formats = ["structured", "plain"]
        if v.lower() not in valid_formats:
            raise ValueError(f"Log format must be one of: {valid_formats}")
        return v.lower()

    def get_database_url(self) -> str:
        """Get the complete database URL."""
        if self.database_url:
            return self.database_url

        # Default to SQLite in data directory
        db_dir = Path(self.data_directory)
        db_dir.mkdir(exist_ok=True)
        db_path = db_dir / "stockguard.db"
        return f"sqlite:///{db_path}"

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()

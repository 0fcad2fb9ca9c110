"""
Pydantic settings for the CSI preprocessing toolkit
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings with environment variable support (prefix ``CSIPREP_``)."""

    # Application settings
    environment: str = Field(default="development", description="Environment (development, testing, production)")
    debug: bool = Field(default=False, description="Debug mode")

    # Pipeline settings
    default_suite: str = Field(default="infit", description="Suite used when none is requested")
    default_device: str = Field(default="iwl5300", description="Device profile used when none is requested")
    max_workers: int = Field(default=1, description="Threads used for per-channel filtering and STFT")

    # Logging settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_max_size: int = Field(default=10485760, description="Max log file size in bytes (10MB)")
    log_backup_count: int = Field(default=5, description="Number of log backup files")

    model_config = SettingsConfigDict(
        env_prefix="CSIPREP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_environments = ["development", "testing", "production"]
        if v not in allowed_environments:
            raise ValueError(f"Environment must be one of: {allowed_environments}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level setting."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed_levels:
            raise ValueError(f"Log level must be one of: {allowed_levels}")
        return v.upper()

    @field_validator("default_suite")
    @classmethod
    def validate_default_suite(cls, v):
        """Validate default suite name."""
        allowed_suites = ["infit", "widance", "carm"]
        if v.lower() not in allowed_suites:
            raise ValueError(f"Default suite must be one of: {allowed_suites}")
        return v.lower()

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v):
        """Validate worker count."""
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_test_settings() -> Settings:
    """Get settings for testing."""
    return Settings(
        environment="testing",
        debug=True,
        log_level="DEBUG",
        max_workers=1,
    )


def load_settings_from_file(file_path: str) -> Settings:
    """Load settings from a specific env file."""
    return Settings(_env_file=file_path)


def validate_settings(settings: Settings) -> List[str]:
    """Validate settings and return list of issues."""
    issues = []

    if settings.is_production and settings.debug:
        issues.append("Debug mode should be disabled in production")

    if settings.max_workers > 1 and settings.log_level == "DEBUG":
        issues.append("DEBUG logging from worker threads interleaves, consider max_workers=1")

    return issues

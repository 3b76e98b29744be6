from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal
from functools import lru_cache


class Settings(BaseSettings):
    # Application settings
    app_name: str = "ledger"
    app_version: str = "1.0.0"

    # Logging settings (logs always go to stderr, stdout carries the report)
    log_level: str = "WARNING"
    log_format: Literal["json", "text"] = "text"

    # Business logic settings
    abort_on_insufficient_funds: bool = True  # False skips the withdrawal instead
    freeze_locked_accounts: bool = False  # True ignores transactions for locked accounts

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Environment-specific configurations
class DevelopmentSettings(Settings):
    log_level: str = "DEBUG"


class ProductionSettings(Settings):
    log_level: str = "WARNING"
    log_format: Literal["json", "text"] = "json"


class TestingSettings(Settings):
    log_level: str = "WARNING"  # Reduce noise in tests
    log_format: Literal["json", "text"] = "text"


def get_settings_for_environment(env: str = "production") -> Settings:
    """Get settings for specific environment."""
    settings_map = {
        "development": DevelopmentSettings,
        "production": ProductionSettings,
        "testing": TestingSettings,
    }

    settings_class = settings_map.get(env.lower(), Settings)
    return settings_class()

"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./billpay.db"

    # Service
    service_name: str = "billpay-engine"
    log_level: str = "INFO"

    # Schedules
    eager_schedule_months: int = 12  # Biller schedules created at activation
    default_due_day: int = 15


settings = Settings()

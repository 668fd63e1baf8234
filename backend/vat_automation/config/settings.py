"""Application Settings - Central Configuration"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "vat_automation_dev"
    mongo_transactions_enabled: bool = False  # Requires a replica set

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"
    log_to_file: bool = True

    # Business calendar
    business_timezone: str = "Europe/London"

    # Quarter creation
    quarter_creation_day: int = 1
    carry_forward_assignee: bool = False

    # Daily transition run
    auto_assign_after_transition: bool = False

    # Scheduler
    scheduler_enabled: bool = True
    transition_run_hour: int = 6
    transition_run_minute: int = 0
    creation_run_hour: int = 0
    creation_run_minute: int = 5

    # Bearer token for the cron-triggered HTTP endpoints
    automation_secret: str = ""

    # Links in notification emails
    app_base_url: str = "http://localhost:3000"
    vat_dashboard_path: str = "/dashboard/clients/vat-dt"

    # Synthetic actor used for automated history entries
    system_user_name: str = "System Auto-Update"
    system_email: str = "system@practice.local"

    # Sender identity on queued emails
    notification_from_email: str = "system@practice.local"
    notification_from_name: str = "Practice Automation"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def vat_dashboard_url(self) -> str:
        """Absolute URL of the VAT deadline dashboard"""
        return f"{self.app_base_url.rstrip('/')}{self.vat_dashboard_path}"

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

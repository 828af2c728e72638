"""Configuration management for lifeplanner."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="data/lifeplanner.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Scheduler Configuration
    enable_scheduler: bool = Field(default=True, description="Run the background goal status refresh job")
    goal_status_refresh_hour: int = Field(
        default=2, ge=0, le=23, description="Hour of day (UTC) at which cached goal statuses are refreshed"
    )

    # Pagination
    default_page_size: int = Field(default=20, ge=1, description="Default page size for list endpoints")
    max_page_size: int = Field(default=200, ge=1, description="Upper bound for the page size a client may request")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value

    @property
    def is_production(self) -> bool:
        """Whether the app runs in the production environment."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # Eisenhower Matrix
    PRIORITY_LEVELS: tuple[str, ...] = ("low", "medium", "high", "critical")
    PRIORITY_LEVEL_THRESHOLD: int = 2  # high and above count as urgent / important
    IMPORTANCE_WEIGHT: int = 3
    URGENCY_WEIGHT: int = 2

    # Goal status derivation
    GOAL_AT_RISK_WINDOW_DAYS: int = 7
    GOAL_AT_RISK_PROGRESS_THRESHOLD: int = 80
    GOAL_COMPLETE_PROGRESS: int = 100

    # Roadmap
    MILESTONE_HOURS_PER_DAY: int = 8

    # Task validation
    TASK_TITLE_MIN_LENGTH: int = 2
    TASK_TITLE_MAX_LENGTH: int = 200
    TASK_DESCRIPTION_MAX_LENGTH: int = 1000

    # Related records shown next to a task
    RELATED_TASKS_LIMIT: int = 5

    # Dashboard
    UPCOMING_DEADLINES_LIMIT: int = 5

    # Listing everything an owner has (used by reverse lookups and jobs)
    FULL_SCAN_PER_PAGE: int = 1000

    # Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent.parent


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()

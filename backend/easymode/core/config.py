"""Application configuration managed via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Easy Mode Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "sqlite:///./easymode.db"
    database_create_tables: bool = True
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.7
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_workspace: str = "default"
    opik_project: str = "easy-mode"
    telemetry_flush_timeout_seconds: float = 5.0
    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    daily_nudge_hour: int = 9
    proactive_nudge_hours: str = "9,14,19"
    weekly_job_day: int = 6
    weekly_job_hour: int = 20
    weekly_job_minute: int = 0
    jobs_run_on_startup: bool = False
    notifications_enabled: bool = False
    notifications_provider: str = "noop"

    @property
    def proactive_nudge_hours_list(self) -> list[int]:
        hours: list[int] = []
        for part in self.proactive_nudge_hours.split(","):
            part = part.strip()
            if part.isdigit() and 0 <= int(part) <= 23:
                hours.append(int(part))
        return hours


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()

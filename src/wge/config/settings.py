"""Application settings loaded from environment."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly typed settings for the analytics engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Document store
    store_backend: Literal["memory", "postgres"] = Field(default="memory", alias="STORE_BACKEND")
    store_seed_path: Optional[str] = Field(default=None, alias="STORE_SEED_PATH")
    store_max_retries: int = Field(default=5, alias="STORE_MAX_RETRIES")

    # Database
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pghost: Optional[str] = Field(default=None, alias="PGHOST")
    pgport: int = Field(default=5432, alias="PGPORT")
    pguser: Optional[str] = Field(default=None, alias="PGUSER")
    pgpassword: Optional[str] = Field(default=None, alias="PGPASSWORD")
    pgdatabase: Optional[str] = Field(default=None, alias="PGDATABASE")

    # Gemini
    google_api_key: Optional[str] = Field(default=None, alias="GOOGLE_API_KEY")
    gemini_api_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        alias="GEMINI_API_BASE_URL",
    )
    gemini_model_id: str = Field(default="gemini-1.5-pro", alias="GEMINI_MODEL_ID")
    gemini_temperature: float = Field(default=0.2, alias="GEMINI_TEMPERATURE")
    gemini_max_output_tokens: int = Field(default=1024, alias="GEMINI_MAX_OUTPUT_TOKENS")
    gemini_timeout_seconds: float = Field(default=20.0, alias="GEMINI_TIMEOUT_SECONDS")
    llm_max_retries: int = Field(default=2, alias="LLM_MAX_RETRIES")
    llm_sleep_seconds: float = Field(default=1.0, alias="LLM_SLEEP_SECONDS")
    overflow_prompt_version: str = Field(default="overflow_v001", alias="OVERFLOW_PROMPT_VERSION")

    # Analysis windows
    cleanliness_window_days: int = Field(default=30, alias="CLEANLINESS_WINDOW_DAYS")
    overflow_window_days: int = Field(default=7, alias="OVERFLOW_WINDOW_DAYS")
    stale_report_days: int = Field(default=30, alias="STALE_REPORT_DAYS")
    policy_lookback_days: int = Field(default=30, alias="POLICY_LOOKBACK_DAYS")
    busy_ward_threshold: int = Field(default=10, alias="BUSY_WARD_THRESHOLD")

    # Scheduler (intervals in hours)
    job_max_workers: int = Field(default=8, alias="JOB_MAX_WORKERS")
    cleanliness_interval_hours: float = Field(default=24, alias="CLEANLINESS_INTERVAL_HOURS")
    overflow_interval_hours: float = Field(default=6, alias="OVERFLOW_INTERVAL_HOURS")
    participation_interval_hours: float = Field(default=24, alias="PARTICIPATION_INTERVAL_HOURS")
    efficiency_interval_hours: float = Field(default=24, alias="EFFICIENCY_INTERVAL_HOURS")
    stale_sweep_interval_hours: float = Field(default=24, alias="STALE_SWEEP_INTERVAL_HOURS")
    summary_interval_hours: float = Field(default=24, alias="SUMMARY_INTERVAL_HOURS")
    ward_stats_interval_hours: float = Field(default=1, alias="WARD_STATS_INTERVAL_HOURS")
    scheduler_run_on_start: bool = Field(default=False, alias="SCHEDULER_RUN_ON_START")

    # Runtime
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    run_env: str = Field(default="local", alias="RUN_ENV")

    def get_database_url(self) -> str:
        """Return a usable database URL or raise."""
        if self.database_url:
            return self.database_url

        if all([self.pghost, self.pguser, self.pgpassword, self.pgdatabase]):
            return (
                "postgresql://"
                f"{self.pguser}:{self.pgpassword}@{self.pghost}:{self.pgport}/"
                f"{self.pgdatabase}"
            )

        raise ValueError("DATABASE_URL or PG* env vars must be set")

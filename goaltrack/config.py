import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/goaltrack"
    default_tz: str = "UTC"
    api_key: str | None = None
    log_level: str = "INFO"

    # Goal progress engine knobs
    goals_respect_end_date: bool = False  # Stop accruing metrics past a goal's end_date
    goals_atomic_ingestion: bool = False  # One transaction per ingestion instead of per step
    goals_unmapped_metric_policy: str = "ignore"  # "ignore" | "error"

    # Achievement payload
    achievement_points: int = 100
    achievement_level: int = 1

    # Read-side windows (days)
    metrics_default_days: int = 7
    trend_default_days: int = 30
    score_window_days: int = 7

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

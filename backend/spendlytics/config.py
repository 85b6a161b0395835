from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Spendlytics Goal Insights API"
    database_url: str = ""
    # Comma-separated origins for CORS. Use "*" only for local/demo environments.
    cors_allow_origins: str = "*"
    jwt_secret_key: str
    jwt_algorithm: str
    log_level: str = "INFO"

    # Insight engine tuning; the values below are the product defaults.
    insights_max_items: int = 10
    insights_trend_change_ratio: float = 0.10
    drift_warning_threshold: float = 0.10
    drift_critical_threshold: float = 0.25
    # Rolling pace horizon for goals without a target date.
    drift_horizon_days: int = 365
    progress_history_limit: int = 60

    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()

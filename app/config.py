import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _resolve_database_url() -> str:
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        return database_url

    environment = os.getenv("ENVIRONMENT", "").strip().lower()
    if environment == "development":
        return "postgresql+psycopg://localhost:5434/officer_registry"

    raise ValueError(
        "DATABASE_URL is not set. Set DATABASE_URL for non-development "
        "environments or set ENVIRONMENT=development for local defaults."
    )


def _split_keys(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    database_url: str = _resolve_database_url()
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))
    db_max_overflow: int = int(os.getenv("DB_MAX_OVERFLOW", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    db_pool_recycle: int = int(os.getenv("DB_POOL_RECYCLE", "1800"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Field cipher: master key material, per-district keys are derived from it
    field_cipher_key: str = os.getenv("FIELD_CIPHER_KEY", "")
    field_cipher_previous_keys: tuple[str, ...] = _split_keys(
        os.getenv("FIELD_CIPHER_PREVIOUS_KEYS", "")
    )

    # Classification thresholds (age in whole years)
    youth_min_age: int = int(os.getenv("CLASSIFICATION_YOUTH_MIN_AGE", "18"))
    adult_min_age: int = int(os.getenv("CLASSIFICATION_ADULT_MIN_AGE", "36"))
    promotion_window_days: int = int(os.getenv("PROMOTION_WINDOW_DAYS", "90"))

    # Default delta windows when no baseline has been recorded
    delta_week_days: int = int(os.getenv("DELTA_WEEK_DAYS", "7"))
    delta_month_days: int = int(os.getenv("DELTA_MONTH_DAYS", "30"))

    brand_name: str = os.getenv("BRAND_NAME", "Officer Registry")


settings = Settings()

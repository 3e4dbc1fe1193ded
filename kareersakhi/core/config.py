import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./kareersakhi.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Entitlement persistence
    ENTITLEMENT_STORAGE_KEY: str = "subscription-storage"

    # Intake constraints (comma-separated extensions, size in MB)
    ACCEPTED_FILE_TYPES: str = ".pdf,.doc,.docx"
    MAX_FILE_SIZE_MB: float = 5

    # Analysis service
    ANALYSIS_SERVICE_URL: Optional[str] = None
    ANALYSIS_SERVICE_TOKEN: Optional[str] = None
    ANALYSIS_TIMEOUT_SECONDS: float = 30.0

    # Razorpay
    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None
    PAYMENT_CURRENCY: str = "INR"
    PAYMENT_BRAND_NAME: str = "KareerSakhi"
    PAYMENT_DESCRIPTION: str = "Resume Review Service"
    PAYMENT_THEME_COLOR: str = "#1E3A8A"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("kareersakhi")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "ANALYSIS_SERVICE_URL",
        "RAZORPAY_KEY_ID",
        "RAZORPAY_KEY_SECRET",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    if cfg.MAX_FILE_SIZE_MB <= 0:
        message = "MAX_FILE_SIZE_MB must be positive"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True

import logging
import sys
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./marketplace.db"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:19006"]
    DELIVERY_FEE_CENTS: int = 500
    DECREMENT_STOCK_ON_ORDER: bool = True
    LOCK_DIR: str = ""
    LOCK_TIMEOUT_SECONDS: float = 10.0
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()


def configure_logging(level: str = None):
    """Attach a single stdout handler to the package logger (idempotent)."""
    log = logging.getLogger("marketplace")
    log.setLevel((level or settings.LOG_LEVEL).upper())
    if not log.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )
        log.addHandler(h)
    return log

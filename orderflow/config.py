# orderflow/config.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from pathlib import Path
from typing import Optional
from functools import lru_cache
import logging


class Settings(BaseSettings):
    ENV: str = "development"
    DATA_DIR: Path = Path("data")  # where the CSV table files live
    ORDERS_FILE: str = "orders.csv"

    # serialize load -> apply -> save per order id inside this process
    SERIALIZE_PER_ORDER: bool = True

    LOG_LEVEL: str = "INFO"

    # Example .env:
    # DATA_DIR=./data
    # SERIALIZE_PER_ORDER=false

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Apply LOG_LEVEL to the root logger (no-op for handlers already installed)."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


settings = Settings()

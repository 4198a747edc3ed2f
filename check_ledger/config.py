"""
Application configuration.

Everything is read from environment variables (a .env file is
loaded first when present). Printer names, export folders and
database URLs belong in the environment, not in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class Settings:
    """Settings for the check ledger service."""

    # Application
    APP_NAME: str = "Check Ledger"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = _env_int("PORT", 8000)

    # Storage: a local SQLite file unless told otherwise
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./check_ledger.db")

    # First check number when neither the batch nor a profile gives one
    DEFAULT_START_NUMBER: int = _env_int("DEFAULT_START_NUMBER", 1001)

    # Print target for checks printed outside a batch:
    # interactive, silent (needs a device) or pdf (needs a folder)
    BATCH_PRINT_MODE: str = os.getenv("BATCH_PRINT_MODE", "interactive").lower()
    BATCH_PRINTER_DEVICE: str = os.getenv("BATCH_PRINTER_DEVICE", "")
    BATCH_PDF_EXPORT_PATH: str = os.getenv("BATCH_PDF_EXPORT_PATH", "")

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()

# app/shared/config.py
from pathlib import Path
from pydantic import BaseModel
import os

ROOT = Path(__file__).resolve().parents[2]   # project root
STORAGE_DIR = ROOT / "storage"

class Settings(BaseModel):
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # durable key-value storage (one table, namespaced by origin)
    DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{(STORAGE_DIR / 'surveypro.db').as_posix()}")
    STORAGE_CAS_RETRIES: int = int(os.getenv("STORAGE_CAS_RETRIES", "5"))
    DEFAULT_ORIGIN: str = os.getenv("DEFAULT_ORIGIN", "default")

    # local day boundary used for the daily counters
    TZ: str = os.getenv("TZ", "UTC")

    # static catalog
    BASE_PATH: str = os.getenv("BASE_PATH", "/")
    CATALOG_ORIGIN: str = os.getenv("CATALOG_ORIGIN", "http://127.0.0.1:8000")
    CATALOG_URL: str | None = os.getenv("CATALOG_URL")  # full override
    CATALOG_FILE: str = os.getenv("CATALOG_FILE", str(ROOT / "app" / "static" / "db.json"))
    CATALOG_CACHE_MODE: str = os.getenv("CATALOG_CACHE_MODE", "no-store")
    CATALOG_CACHE_BUST: bool = os.getenv("CATALOG_CACHE_BUST", "true").lower() == "true"
    CATALOG_RETRIES: int = int(os.getenv("CATALOG_RETRIES", "0"))
    CATALOG_TIMEOUT: float | None = float(os.environ["CATALOG_TIMEOUT"]) if os.getenv("CATALOG_TIMEOUT") else None

    # cosmetic withdrawal toasts
    TOASTS_ENABLED: bool = os.getenv("TOASTS_ENABLED", "true").lower() == "true"
    TOAST_INTERVAL_SECONDS: float = float(os.getenv("TOAST_INTERVAL_SECONDS", "25"))

settings = Settings()

"""Application configuration.

Environment variables override all defaults. A `.env` file in the
backend directory is loaded for local development.
"""

import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load .env for local development; a missing file is a no-op
_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./trustmeds.db")

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Expiry windows (days) used by the dashboard and expiry tracker
    NEAR_EXPIRY_DAYS: int = int(os.getenv("NEAR_EXPIRY_DAYS", "30"))
    FAR_EXPIRY_DAYS: int = int(os.getenv("FAR_EXPIRY_DAYS", "90"))

    # Chronic-care refills due within this many days are surfaced
    REFILL_ALERT_DAYS: int = int(os.getenv("REFILL_ALERT_DAYS", "7"))

    # GST rate (percent) stamped on invoice lines; display only, not tax-law accurate
    DEFAULT_GST_RATE: float = float(os.getenv("DEFAULT_GST_RATE", "12"))

    # Suggested order = min_threshold * multiplier - current stock
    PROCUREMENT_MULTIPLIER: int = int(os.getenv("PROCUREMENT_MULTIPLIER", "2"))

    # Seed the two demo medicines into an empty database on startup
    SEED_DEMO_CATALOG: bool = _env_bool("SEED_DEMO_CATALOG", ENVIRONMENT == "development")

    # Groq API Key (Must be set via .env, never in code). Empty disables the interaction advisor.
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]


settings = Settings()

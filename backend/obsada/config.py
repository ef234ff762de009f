"""
backend/obsada/config.py

Purpose:
    Central settings loading for backend services.

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "obsada"
    JWT_SECRET: str = "change-me"
    JWT_SECRET_OLD: str = ""  # Set during rotation; cleared after token expiry
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"
    COOKIE_SECURE: bool = False  # Set True in production (HTTPS)

    # JWT settings
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Seed owner user (leave empty to skip seeding)
    SEED_OWNER_EMAIL: str = ""
    SEED_OWNER_PASSWORD: str = ""

    # SMS gateway (smsplanet.pl wire protocol)
    SMS_API_URL: str = "https://api2.smsplanet.pl"
    SMS_API_KEY: str = ""
    SMS_PASSWORD: str = ""
    SMS_NUMBER: str = ""   # sender for scheduled assignment notifications
    SMS_SENDER: str = ""   # sender id for one-way replies
    SMS_TIMEOUT_SECONDS: float = 15.0
    SMS_WEBHOOK_TOKEN: str = ""  # empty disables the inbound webhook

    # Calendar conventions for match days and SMS send dates
    LEAGUE_TIMEZONE: str = "UTC"

    # Grading windows (hours after kickoff)
    MATCH_DURATION_HOURS: int = 2
    GRADE_ENTRY_WINDOW_HOURS: int = 4      # match duration + 2h
    OVERALL_GRADE_ENTRY_WINDOW_HOURS: int = 50  # match duration + 48h

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }


settings = Settings()

# backend configuration
# loads env vars for mongodb, jwt, query timeouts and dashboard window sizes

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "therapist_dashboard")

    # jwt auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "dashboard-dev-secret-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # per-query timeout, expiry counts as a fetch failure
    QUERY_TIMEOUT_SECONDS: float = 10.0

    # dashboard windows
    PENDING_REQUEST_LIMIT: int = 3
    UPCOMING_APPOINTMENT_LIMIT: int = 5
    CONVERSATION_SCAN_LIMIT: int = 10
    MESSAGES_PER_CONVERSATION: int = 5
    RECENT_MESSAGE_LIMIT: int = 5

    # therapist registration
    PASSWORD_MIN_LENGTH: int = 6

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()

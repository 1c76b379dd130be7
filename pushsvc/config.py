"""
Application configuration
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Push Notification Service"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./pushsvc.db"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Firebase service account (JSON with private_key, client_email, project_id)
    FIREBASE_CREDENTIALS_PATH: str = "serviceAccountKey.json"

    # FCM HTTP v1
    FCM_API_BASE: str = "https://fcm.googleapis.com/v1/projects"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Manual send endpoint
    ADMIN_API_KEY: Optional[str] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()


# Outbound calls never wait longer than this, whatever the environment says
MAX_HTTP_TIMEOUT_SECONDS = 10.0


def http_timeout() -> float:
    return min(settings.HTTP_TIMEOUT_SECONDS, MAX_HTTP_TIMEOUT_SECONDS)

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Backend
    API_BASE_URL: str = "http://127.0.0.1:8000"
    HTTP_TIMEOUT: Optional[float] = None  # None = pas de timeout local

    # Dashboard
    POLL_INTERVAL_SECONDS: float = 2.0

    # Mode CUSTOM (slider kWh)
    CUSTOM_KWH_MIN: int = 10
    CUSTOM_KWH_MAX: int = 100
    CUSTOM_KWH_STEP: int = 5
    CUSTOM_KWH_DEFAULT: int = 50

    # Credentials opérateur
    CREDENTIAL_STORE_PATH: Optional[str] = "~/.greengrid/credentials.json"
    CREDENTIAL_KEY: str = "admin_token"

    NOTIFICATION_HISTORY: int = 50
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()

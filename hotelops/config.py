"""
Application settings
Read from environment variables (and an optional .env file)
"""
import os
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "HotelOps"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite:///./hotelops.db"

    # JWT
    SECRET_KEY: str = "hotelops-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 720

    # OCR vision model (OpenAI-compatible endpoint, Gemini by default)
    OCR_API_KEY: Optional[str] = os.environ.get("OCR_API_KEY")
    OCR_BASE_URL: str = os.environ.get(
        "OCR_BASE_URL",
        "https://generativelanguage.googleapis.com/v1beta/openai/"
    )
    OCR_MODEL: str = os.environ.get("OCR_MODEL", "gemini-2.0-flash")
    OCR_TIMEOUT: float = float(os.environ.get("OCR_TIMEOUT", "60"))

    # Outbound webhooks
    WEBHOOK_TIMEOUT: float = float(os.environ.get("WEBHOOK_TIMEOUT", "10"))

    # Event bus
    EVENT_HISTORY_SIZE: int = 100

    # VietQR image endpoint
    VIETQR_BASE_URL: str = "https://img.vietqr.io/image"

    # Business thresholds
    GROUP_PAYMENT_LEFTOVER_THRESHOLD: int = 1000
    DEFAULT_GEOFENCE_RADIUS: int = 100

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()

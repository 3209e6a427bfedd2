from __future__ import annotations

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Moondream Auto-Labeler"

    MOONDREAM_API_KEY: Optional[str] = None
    MOONDREAM_API_URL: str = "https://api.moondream.ai/v1"
    # None leaves requests without a timeout
    MOONDREAM_TIMEOUT: Optional[float] = None

    HOST: str = "0.0.0.0"
    PORT: int = 3002
    BACKEND_CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    """
    Build settings from the current environment.

    Not cached, so a credential exported after startup is picked up by the
    next request.
    """
    return Settings()

from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./stockroom.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    FRONTEND_ORIGINS: List[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    DEFAULT_OPERATOR: str = "Admin"
    DEFAULT_LOW_STOCK_THRESHOLD: int = 10
    SKU_LOOKUP_MIN_LENGTH: int = 4

    SCAN_ERROR_DISPLAY_SECONDS: float = 3.0
    SCAN_SESSION_TTL_SECONDS: int = 1800
    SCAN_SESSION_SWEEP_SECONDS: int = 60

    PENDING_PAGE_SIZE: int = 10
    LOG_PAGE_SIZE: int = 50

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()

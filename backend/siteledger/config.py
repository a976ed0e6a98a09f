"""Site Ledger Configuration

Configuration settings for the Site Ledger service.
"""

from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    """Site Ledger settings"""

    # Service Configuration
    APP_NAME: str = "Site Ledger Service"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Database Configuration
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/siteledger.db"
    DATABASE_ECHO: bool = False

    # CORS Configuration
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Security
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    # Bootstrap admin, created on first start
    ADMIN_NAME: str = "Administrator"
    ADMIN_EMAIL: str = "admin@siteledger.local"
    ADMIN_PASSWORD: str = "admin123"

    # Pagination Defaults
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Purchase orders are checked against site budgets when enabled
    SITE_BUDGET_VALIDATION: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_data_dir() -> Path:
    """Get the data directory path, creating it if necessary"""
    data_dir = Path.cwd() / "data"
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir

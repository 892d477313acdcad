# settings.py
import os
from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "TeeStudio Backend"
    API_V1_PREFIX: str = "/api"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Security
    JWT_SECRET: str = os.getenv("JWT_SECRET", "super-secret-key")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRY_MINUTES: int = 60 * 24  # 24h

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "sqlite+aiosqlite:///./dev.db"  # default local SQLite
    )
    SEED_CATALOG: bool = True

    # Design studio
    CANVAS_WIDTH: int = 320
    CANVAS_HEIGHT: int = 384
    DESIGN_FEE: Decimal = Decimal("5.00")

    # Mockups are served as <MOCKUP_BASE_URL>/images/products/<file>.
    # Leave empty to render every product on a solid fill.
    MOCKUP_BASE_URL: str = os.getenv("MOCKUP_BASE_URL", "")
    MOCKUP_FETCH_TIMEOUT: float = 10.0

    # Frontend URL (CORS)
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:5173")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


# ✅ Instantiate settings globally
settings = Settings()

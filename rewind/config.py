"""
Configuration de l'application / Application configuration.
Utilise pydantic-settings pour charger depuis .env ou variables d'environnement.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Rewind"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Database - SQLite par défaut pour le développement
    # Database - SQLite by default for development
    DATABASE_URL: str = "sqlite+aiosqlite:///./rewind.db"

    # CORS - origines autorisées / allowed origins
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # JWT Authentication
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Rate Limiting
    RATE_LIMIT_LOGIN: str = "5/minute"

    # Historique des changements / Change history
    RECENT_CHANGES_DEFAULT_LIMIT: int = 50
    RECENT_CHANGES_MAX_LIMIT: int = 200
    # Un superadmin peut annuler les changements des autres /
    # A superadmin may undo other users' changes
    UNDO_ADMIN_OVERRIDE: bool = False

    # Annulation rapide / Quick undo
    QUICK_UNDO_TTL_MINUTES: int = 1440
    QUICK_UNDO_LIST_LIMIT: int = 20
    QUICK_UNDO_SWEEP_INTERVAL_SECONDS: int = 3600

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()

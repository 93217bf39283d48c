# cohorthub/core/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from pydantic import field_validator

class Settings(BaseSettings):
    """
    Основные переменные окружения и настройки движка.
    Все значения берутся из окружения или .env.
    """
    # Database
    DATABASE_URL: str
    DB_POOL_TIMEOUT_SECONDS: float = 5.0
    DB_LOCK_TIMEOUT_SECONDS: float = 5.0

    # JWT / Security
    SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Bootstrap
    FIRST_ADMIN_USERNAME: str = "admin"
    FIRST_ADMIN_EMAIL: str = "admin@example.com"
    PROBLEM_STATEMENTS_CSV: Optional[str] = None

    # App meta
    ENV: str = "development"
    DEBUG: bool = True
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Teams
    TEAM_MAX_MEMBERS: int = 6
    TEAM_NAME_MIN_LENGTH: int = 3
    TEAM_NAME_MAX_LENGTH: int = 50
    TEAM_DESCRIPTION_MAX_LENGTH: int = 200

    # Problem statements
    PROBLEM_STATEMENT_CAPACITY: int = 4

    # Votes
    VOTE_COMMENT_MAX_LENGTH: int = 500

    # Scores
    ATTENDANCE_POINTS: int = 10
    LEADERBOARD_PAGE_SIZE: int = 10

    # Unit of work
    ATOMIC_MAX_ATTEMPTS: int = 5
    ATOMIC_BACKOFF_SECONDS: float = 0.02
    OPERATION_TIMEOUT_SECONDS: float = 10.0

    # Авто-сплит строкового списка ALLOWED_ORIGINS из .env
    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def split_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

settings = Settings()

import os
from typing import List, Optional
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = "CoffeeBot"
    VERSION: str = "2.0.0"

    # Database
    DB_HOST: Optional[str] = os.getenv("DB_HOST")
    DB_PORT: int = int(os.getenv("DB_PORT", "5432")) if os.getenv("DB_PORT") else 5432
    DB_USER: Optional[str] = os.getenv("DB_USER")
    DB_PASSWORD: Optional[str] = os.getenv("DB_PASSWORD")
    DB_NAME: Optional[str] = os.getenv("DB_NAME")
    DB_ECHO: bool = False
    # Full URL override, e.g. sqlite+aiosqlite:///coffee.db for local runs
    DATABASE_URL_OVERRIDE: Optional[str] = os.getenv("DATABASE_URL_OVERRIDE")

    # Time zone used for "today" and for audit timestamps
    TIMEZONE: str = os.getenv("TIMEZONE", "Australia/Melbourne")

    # Migrations
    TARGET_MIGRATION_LEVEL: int = 2
    # Comma separated slack user ids allowed to run `migrate`. Empty means anyone.
    MIGRATION_ALLOWED_USER_IDS: str = os.getenv("MIGRATION_ALLOWED_USER_IDS", "")

    # Request authorisation
    AUTH_KEY: Optional[str] = os.getenv("AUTH_KEY")
    ADMIN_KEY: Optional[str] = os.getenv("ADMIN_KEY")
    SLACK_SIGNING_SECRET: Optional[str] = os.getenv("SLACK_SIGNING_SECRET")
    SLASH_COMMAND: str = "/coffee"

    # Logging
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Coffee limits
    MAX_COFFEE_ADD: int = 5
    MAX_COFFEE_SUBTRACT: int = 2
    COUNT_DISPLAY_SIZE: int = 5

    # Account linking
    LINK_CODE_WORDS: int = 4
    LINK_CODE_TTL_HOURS: int = 24

    # Backups
    BACKUP_BACKEND: str = os.getenv("BACKUP_BACKEND", "s3")  # "s3", "memory"
    BACKUP_SCHEDULE_ENABLED: bool = True
    BACKUP_HOUR: int = 2
    AWS_ACCESS_KEY_ID: Optional[str] = os.getenv("AWS_ACCESS_KEY_ID")
    AWS_SECRET_KEY: Optional[str] = os.getenv("AWS_SECRET_KEY")
    AWS_REGION: Optional[str] = os.getenv("AWS_REGION")
    AWS_BUCKET_NAME: Optional[str] = os.getenv("AWS_BUCKET_NAME")
    AWS_BACKUP_FOLDER: str = os.getenv("AWS_BACKUP_FOLDER", "backups")

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def migration_allowed_users(self) -> List[str]:
        return [user_id.strip() for user_id in self.MIGRATION_ALLOWED_USER_IDS.split(",") if user_id.strip()]

    class Config:
        env_file = ".env"


settings = Settings()

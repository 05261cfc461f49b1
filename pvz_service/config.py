import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "postgresql://postgres:postgres@db:5432/postgres")
    # sql: PostgreSQL через SQLAlchemy, memory: хранилище в памяти процесса
    STORAGE_BACKEND: str = os.getenv("STORAGE_BACKEND", "sql")

    # Auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "your-secret-key")
    TOKEN_TTL_HOURS: int = int(os.getenv("TOKEN_TTL_HOURS", "24"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """URL для синхронного драйвера (приложение и Alembic)"""
        return self.DATABASE_URL.replace("postgresql+asyncpg://", "postgresql://").replace(
            "postgres://", "postgresql://"
        )


settings = Settings()

import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pvz_service.infrastructure.db_schema import metadata

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str) -> Engine:
    # Приложение синхронное, asyncpg не нужен
    if "asyncpg" in database_url:
        database_url = database_url.replace("postgresql+asyncpg://", "postgresql://")
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # Одна общая in-memory база на все потоки
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Создает таблицы, если их еще нет"""
    metadata.create_all(bind=engine)
    logger.info("Таблицы созданы")

# pvz_service/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI

from pvz_service.config import Settings, settings as default_settings
from pvz_service.application.interfaces import Storage
from pvz_service.container import Container
from pvz_service.presentation.api import router

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, storage: Optional[Storage] = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Управление жизненным циклом приложения"""
        if getattr(app.state, "container", None) is None:
            app.state.container = Container.from_settings(settings)
            logger.info("Хранилище инициализировано")

        yield

        logger.info("Приложение останавливается...")

    app = FastAPI(
        title="PVZ Service",
        description="Сервис приемки товаров на пунктах выдачи заказов",
        version="1.0.0",
        lifespan=lifespan,
    )
    if storage is not None:
        app.state.container = Container.from_settings(settings, storage=storage)

    app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()

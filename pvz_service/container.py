import logging
from datetime import timedelta
from typing import Optional

from pvz_service.config import Settings
from pvz_service.application.interfaces import Storage, TokenService
from pvz_service.application.users import DummyLoginUseCase, RegisterUserUseCase, LoginUseCase
from pvz_service.application.pvz import CreatePVZUseCase, ListPVZUseCase
from pvz_service.application.receptions import CreateReceptionUseCase, CloseLastReceptionUseCase
from pvz_service.application.products import CreateProductUseCase, DeleteLastProductUseCase
from pvz_service.infrastructure.security import JWTTokenService, hash_password, verify_password


logger = logging.getLogger(__name__)


class Container:
    """
    Связывает хранилище, сервис токенов и use cases.

    Хранилище создается один раз (или передается снаружи, например в тестах)
    и передается в каждый use case по ссылке.
    """

    def __init__(self, storage: Storage, token_service: TokenService):
        self.storage = storage
        self.tokens = token_service

    @classmethod
    def from_settings(cls, settings: Settings, storage: Optional[Storage] = None) -> "Container":
        if storage is None:
            storage = build_storage(settings)
        token_service = JWTTokenService(
            settings.JWT_SECRET, ttl=timedelta(hours=settings.TOKEN_TTL_HOURS)
        )
        return cls(storage, token_service)

    def dummy_login(self) -> DummyLoginUseCase:
        return DummyLoginUseCase(self.tokens)

    def register_user(self) -> RegisterUserUseCase:
        return RegisterUserUseCase(self.storage, hash_password)

    def login(self) -> LoginUseCase:
        return LoginUseCase(self.storage, self.tokens, verify_password)

    def create_pvz(self) -> CreatePVZUseCase:
        return CreatePVZUseCase(self.storage, self.tokens)

    def list_pvz(self) -> ListPVZUseCase:
        return ListPVZUseCase(self.storage, self.tokens)

    def create_reception(self) -> CreateReceptionUseCase:
        return CreateReceptionUseCase(self.storage, self.tokens)

    def close_last_reception(self) -> CloseLastReceptionUseCase:
        return CloseLastReceptionUseCase(self.storage, self.tokens)

    def create_product(self) -> CreateProductUseCase:
        return CreateProductUseCase(self.storage, self.tokens)

    def delete_last_product(self) -> DeleteLastProductUseCase:
        return DeleteLastProductUseCase(self.storage, self.tokens)


def build_storage(settings: Settings) -> Storage:
    if settings.STORAGE_BACKEND == "memory":
        from pvz_service.infrastructure.memory import InMemoryStorage

        logger.info("Используется хранилище в памяти")
        return InMemoryStorage()

    from pvz_service.infrastructure.database import create_db_engine, create_session_factory, init_db
    from pvz_service.infrastructure.storage import SQLAlchemyStorage

    engine = create_db_engine(settings.SYNC_DATABASE_URL)
    init_db(engine)
    return SQLAlchemyStorage(create_session_factory(engine))

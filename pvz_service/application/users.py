import logging
import uuid
from typing import Callable
from pydantic import BaseModel

from pvz_service.domain.models import Role, User
from pvz_service.domain.exceptions import (
    EmailAlreadyExistsError, InvalidRoleError, StorageError, UserNotFoundError
)
from pvz_service.application.interfaces import Storage, TokenService
from pvz_service.application.results import Failure, Result


logger = logging.getLogger(__name__)


class RegisterUserDTO(BaseModel):
    email: str
    password: str
    role: str


class DummyLoginUseCase:
    """Тестовый вход: токен с нужной ролью без пользователя"""

    def __init__(self, token_service: TokenService):
        self._tokens = token_service

    def __call__(self, role: str) -> Result[str]:
        try:
            return self._tokens.issue(role)
        except InvalidRoleError as e:
            return Failure.validation(str(e))


class RegisterUserUseCase:
    def __init__(self, storage: Storage, password_hasher: Callable[[str], str]):
        self._storage = storage
        self._hash = password_hasher

    def __call__(self, dto: RegisterUserDTO) -> Result[User]:
        if not dto.email or not dto.password:
            return Failure.validation("Email и пароль обязательны")
        try:
            role = Role(dto.role)
        except ValueError:
            return Failure.validation(f"Недопустимая роль: {dto.role}")

        user = User(
            id=str(uuid.uuid4()),
            email=dto.email,
            password=self._hash(dto.password),
            role=role,
        )
        try:
            self._storage.create_user(user)
        except EmailAlreadyExistsError as e:
            return Failure.conflict(str(e))
        except StorageError:
            logger.exception(f"Ошибка при создании пользователя {dto.email}")
            return Failure.internal("Ошибка при создании пользователя")

        logger.info(f"Пользователь зарегистрирован: {user.id} ({role.value})")
        # Пароль наружу не отдаем
        return user.without_password()


class LoginUseCase:
    def __init__(
        self,
        storage: Storage,
        token_service: TokenService,
        password_verifier: Callable[[str, str], bool],
    ):
        self._storage = storage
        self._tokens = token_service
        self._verify = password_verifier

    def __call__(self, email: str, password: str) -> Result[str]:
        try:
            user = self._storage.get_user_by_email(email)
        except UserNotFoundError:
            return Failure.unauthorized("Неверные учетные данные")
        except StorageError:
            logger.exception(f"Ошибка при поиске пользователя {email}")
            return Failure.internal()

        if not self._verify(password, user.password):
            logger.warning(f"Неверный пароль для {email}")
            return Failure.unauthorized("Неверные учетные данные")

        return self._tokens.issue_for_user(user)

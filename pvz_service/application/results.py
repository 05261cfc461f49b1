import logging
from enum import Enum
from typing import Optional, TypeVar, Union
from pydantic import BaseModel

from pvz_service.domain.exceptions import ForbiddenError, UnauthorizedError
from pvz_service.domain.models import Role, TokenClaims
from pvz_service.application.interfaces import TokenService


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"


class Failure(BaseModel):
    """Результат неуспешного сценария: вид ошибки и сообщение для клиента"""
    kind: ErrorKind
    message: str

    @classmethod
    def unauthorized(cls, message: str = "Неавторизован") -> "Failure":
        return cls(kind=ErrorKind.UNAUTHORIZED, message=message)

    @classmethod
    def forbidden(cls, message: str = "Доступ запрещен") -> "Failure":
        return cls(kind=ErrorKind.FORBIDDEN, message=message)

    @classmethod
    def validation(cls, message: str) -> "Failure":
        return cls(kind=ErrorKind.VALIDATION, message=message)

    @classmethod
    def conflict(cls, message: str) -> "Failure":
        return cls(kind=ErrorKind.CONFLICT, message=message)

    @classmethod
    def internal(cls, message: str = "Внутренняя ошибка сервера") -> "Failure":
        return cls(kind=ErrorKind.INTERNAL, message=message)


Result = Union[T, Failure]


def is_failure(result) -> bool:
    return isinstance(result, Failure)


def authorize(tokens: TokenService, token: Optional[str], *roles: Role) -> Union[TokenClaims, Failure]:
    """Проверка токена и роли. Возвращает claims или Failure (401/403)."""
    try:
        if len(roles) == 1:
            return tokens.check_role(token, roles[0])
        return tokens.check_role_any(token, *roles)
    except UnauthorizedError as e:
        logger.warning(f"Отказ в доступе: {e}")
        return Failure.unauthorized()
    except ForbiddenError as e:
        logger.warning(f"Недостаточно прав: {e}")
        return Failure.forbidden()

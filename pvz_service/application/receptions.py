import logging
from typing import Optional

from pvz_service.domain.models import Reception, ReceptionStatus, Role
from pvz_service.domain.exceptions import (
    ConflictError, NotFoundError, StorageError
)
from pvz_service.application.interfaces import Storage, TokenService
from pvz_service.application.results import Failure, Result, authorize, is_failure


logger = logging.getLogger(__name__)


class CreateReceptionUseCase:
    def __init__(self, storage: Storage, token_service: TokenService):
        self._storage = storage
        self._tokens = token_service

    def __call__(self, token: Optional[str], pvz_id: str) -> Result[Reception]:
        claims = authorize(self._tokens, token, Role.EMPLOYEE)
        if is_failure(claims):
            return claims

        try:
            reception = self._storage.create_reception(pvz_id)
        except NotFoundError:
            return Failure.validation("ПВЗ не найден")
        except ConflictError as e:
            logger.info(f"Приемка на ПВЗ {pvz_id} не создана: {e}")
            return Failure.conflict(str(e))
        except StorageError:
            logger.exception(f"Ошибка при создании приемки на ПВЗ {pvz_id}")
            return Failure.internal("Ошибка при создании приемки")

        logger.info(f"Пользователь {claims.subject} открыл приемку {reception.id}")
        return reception


class CloseLastReceptionUseCase:
    def __init__(self, storage: Storage, token_service: TokenService):
        self._storage = storage
        self._tokens = token_service

    def __call__(self, token: Optional[str], pvz_id: str) -> Result[Reception]:
        claims = authorize(self._tokens, token, Role.EMPLOYEE)
        if is_failure(claims):
            return claims

        try:
            reception = self._storage.get_last_reception_by_pvz_id(pvz_id)
            self._storage.close_reception(reception.id)
        except NotFoundError:
            return Failure.validation("Приемка не найдена")
        except ConflictError as e:
            return Failure.conflict(str(e))
        except StorageError:
            logger.exception(f"Ошибка при закрытии приемки на ПВЗ {pvz_id}")
            return Failure.internal("Ошибка при закрытии приемки")

        logger.info(f"Пользователь {claims.subject} закрыл приемку {reception.id}")
        return reception.model_copy(update={"status": ReceptionStatus.CLOSE})

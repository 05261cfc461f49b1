import logging
from typing import Optional

from pvz_service.domain.models import Product, ProductType, Role
from pvz_service.domain.exceptions import (
    ConflictError, NotFoundError, ProductNotFoundError, StorageError
)
from pvz_service.application.interfaces import Storage, TokenService
from pvz_service.application.results import Failure, Result, authorize, is_failure


logger = logging.getLogger(__name__)


class CreateProductUseCase:
    def __init__(self, storage: Storage, token_service: TokenService):
        self._storage = storage
        self._tokens = token_service

    def __call__(self, token: Optional[str], pvz_id: str, product_type: str) -> Result[Product]:
        claims = authorize(self._tokens, token, Role.EMPLOYEE)
        if is_failure(claims):
            return claims

        try:
            product_type = ProductType(product_type)
        except ValueError:
            return Failure.validation("Недопустимый тип товара")

        try:
            reception = self._storage.get_last_reception_by_pvz_id(pvz_id)
        except NotFoundError:
            return Failure.validation("Активная приемка не найдена")
        except StorageError:
            logger.exception(f"Ошибка при поиске приемки на ПВЗ {pvz_id}")
            return Failure.internal("Ошибка при добавлении товара")

        if not reception.is_open():
            return Failure.conflict("Приемка уже закрыта")

        try:
            return self._storage.create_product(reception.id, product_type)
        except NotFoundError:
            return Failure.validation("Активная приемка не найдена")
        except ConflictError as e:
            # Приемку закрыли между проверкой и записью
            return Failure.conflict(str(e))
        except StorageError:
            logger.exception(f"Ошибка при добавлении товара в приемку {reception.id}")
            return Failure.internal("Ошибка при добавлении товара")


class DeleteLastProductUseCase:
    def __init__(self, storage: Storage, token_service: TokenService):
        self._storage = storage
        self._tokens = token_service

    def __call__(self, token: Optional[str], pvz_id: str) -> Result[Product]:
        claims = authorize(self._tokens, token, Role.EMPLOYEE)
        if is_failure(claims):
            return claims

        try:
            reception = self._storage.get_last_reception_by_pvz_id(pvz_id)
        except NotFoundError:
            return Failure.validation("Приемка не найдена")
        except StorageError:
            logger.exception(f"Ошибка при поиске приемки на ПВЗ {pvz_id}")
            return Failure.internal("Ошибка при удалении товара")

        if not reception.is_open():
            return Failure.conflict("Приемка уже закрыта")

        try:
            product = self._storage.delete_last_product_in_reception(reception.id)
        except ProductNotFoundError as e:
            return Failure.validation(str(e))
        except NotFoundError:
            return Failure.validation("Приемка не найдена")
        except ConflictError as e:
            return Failure.conflict(str(e))
        except StorageError:
            logger.exception(f"Ошибка при удалении товара из приемки {reception.id}")
            return Failure.internal("Ошибка при удалении товара")

        logger.info(f"Пользователь {claims.subject} удалил товар {product.id}")
        return product

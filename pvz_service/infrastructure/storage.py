import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, List, Dict
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from pvz_service.application.interfaces import Storage
from pvz_service.domain.exceptions import (
    DomainException,
    StorageError,
    UserNotFoundError,
    EmailAlreadyExistsError,
    PVZNotFoundError,
    ReceptionNotFoundError,
    ReceptionAlreadyOpenError,
    ReceptionClosedError,
    ProductNotFoundError,
)
from pvz_service.domain.models import (
    User, PVZ, Reception, ReceptionStatus, Product, ProductType,
    PVZListItem, ReceptionWithProducts,
)
from pvz_service.infrastructure.unit_of_work import UnitOfWork


logger = logging.getLogger(__name__)


class SQLAlchemyStorage(Storage):
    """Реляционное хранилище.

    Каждая операция выполняется в своей транзакции. Проверка и запись внутри
    create_reception / create_product / delete_last_product_in_reception идут под
    блокировкой строки родителя (SELECT ... FOR UPDATE), поэтому параллельные
    запросы к одному ПВЗ или одной приемке выполняются последовательно.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._uow = UnitOfWork(session_factory)

    @contextmanager
    def _transaction(self):
        try:
            with self._uow() as uow:
                yield uow
        except DomainException:
            raise
        except Exception as e:
            # Ошибки драйвера (в том числе не обернутые SQLAlchemy) наружу не пропускаем
            logger.error(f"Ошибка базы данных: {e}")
            raise StorageError(str(e)) from e

    # Пользователи

    def create_user(self, user: User) -> User:
        try:
            with self._transaction() as uow:
                if uow.users.get_by_email(user.email):
                    raise EmailAlreadyExistsError(user.email)
                uow.users.create(user)
                uow.commit()
        except StorageError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise EmailAlreadyExistsError(user.email) from e
            raise
        return user

    def get_user_by_email(self, email: str) -> User:
        with self._transaction() as uow:
            user = uow.users.get_by_email(email)
        if not user:
            raise UserNotFoundError(f"Пользователь {email} не найден")
        return user

    # ПВЗ

    def create_pvz(self, pvz: PVZ) -> PVZ:
        with self._transaction() as uow:
            uow.pvz.create(pvz)
            uow.commit()
        logger.info(f"ПВЗ создан: {pvz.id} ({pvz.city.value})")
        return pvz

    def get_pvz_by_id(self, pvz_id: str) -> PVZ:
        with self._transaction() as uow:
            pvz = uow.pvz.get_by_id(pvz_id)
        if not pvz:
            raise PVZNotFoundError(f"ПВЗ {pvz_id} не найден")
        return pvz

    def list_pvz(
        self,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        page: int,
        limit: int,
    ) -> List[PVZListItem]:
        offset = (page - 1) * limit

        with self._transaction() as uow:
            pvz_list = uow.pvz.list(start_date, end_date, limit, offset)
            receptions = uow.receptions.list_by_pvz_ids([p.id for p in pvz_list])
            products = uow.products.list_by_reception_ids([r.id for r in receptions])

        products_by_reception: Dict[str, List[Product]] = {}
        for product in products:
            products_by_reception.setdefault(product.reception_id, []).append(product)

        receptions_by_pvz: Dict[str, List[ReceptionWithProducts]] = {}
        for reception in receptions:
            receptions_by_pvz.setdefault(reception.pvz_id, []).append(
                ReceptionWithProducts(
                    reception=reception,
                    products=products_by_reception.get(reception.id, []),
                )
            )

        return [
            PVZListItem(pvz=pvz, receptions=receptions_by_pvz.get(pvz.id, []))
            for pvz in pvz_list
        ]

    # Приемки

    def create_reception(self, pvz_id: str) -> Reception:
        reception = Reception(
            id=str(uuid.uuid4()),
            date_time=datetime.now(timezone.utc),
            pvz_id=pvz_id,
            status=ReceptionStatus.IN_PROGRESS,
        )
        try:
            with self._transaction() as uow:
                if not uow.pvz.get_by_id(pvz_id, for_update=True):
                    raise PVZNotFoundError(f"ПВЗ {pvz_id} не найден")
                if uow.receptions.get_open_by_pvz_id(pvz_id):
                    raise ReceptionAlreadyOpenError(pvz_id)
                uow.receptions.create(reception, seq=uow.receptions.next_seq(pvz_id))
                uow.commit()
        except StorageError as e:
            # Уникальный индекс по открытым приемкам сработал в параллельной транзакции
            if isinstance(e.__cause__, IntegrityError):
                raise ReceptionAlreadyOpenError(pvz_id) from e
            raise

        logger.info(f"Приемка {reception.id} открыта на ПВЗ {pvz_id}")
        return reception

    def get_last_reception_by_pvz_id(self, pvz_id: str) -> Reception:
        with self._transaction() as uow:
            reception = uow.receptions.get_last_by_pvz_id(pvz_id)
        if not reception:
            raise ReceptionNotFoundError(f"Приемка для ПВЗ {pvz_id} не найдена")
        return reception

    def close_reception(self, reception_id: str) -> Reception:
        with self._transaction() as uow:
            if not uow.receptions.close(reception_id):
                raise ReceptionClosedError(reception_id)
            reception = uow.receptions.get_by_id(reception_id)
            uow.commit()

        logger.info(f"Приемка {reception_id} закрыта")
        return reception

    # Товары

    def create_product(self, reception_id: str, product_type: ProductType) -> Product:
        product = Product(
            id=str(uuid.uuid4()),
            date_time=datetime.now(timezone.utc),
            type=product_type,
            reception_id=reception_id,
        )
        with self._transaction() as uow:
            reception = uow.receptions.get_by_id(reception_id, for_update=True)
            if not reception:
                raise ReceptionNotFoundError(f"Приемка {reception_id} не найдена")
            if not reception.is_open():
                raise ReceptionClosedError(reception_id)
            uow.products.create(product, seq=uow.products.next_seq(reception_id))
            uow.commit()
        return product

    def get_products_by_reception_id(self, reception_id: str) -> List[Product]:
        with self._transaction() as uow:
            return uow.products.list_by_reception_ids([reception_id])

    def delete_last_product_in_reception(self, reception_id: str) -> Product:
        with self._transaction() as uow:
            reception = uow.receptions.get_by_id(reception_id, for_update=True)
            if not reception:
                raise ReceptionNotFoundError(f"Приемка {reception_id} не найдена")
            if not reception.is_open():
                raise ReceptionClosedError(reception_id)
            product = uow.products.get_last(reception_id)
            if not product:
                raise ProductNotFoundError("Нет товаров для удаления")
            uow.products.delete(product.id)
            uow.commit()

        logger.info(f"Товар {product.id} удален из приемки {reception_id}")
        return product

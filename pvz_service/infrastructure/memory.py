import itertools
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict

from pvz_service.application.interfaces import Storage
from pvz_service.domain.exceptions import (
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


class InMemoryStorage(Storage):
    """Хранилище в памяти процесса для тестов и локального запуска.

    Приемки ПВЗ и товары приемки хранятся списками в порядке создания, поэтому
    "последний" элемент всегда конец списка. Составные операции над одним
    ПВЗ или одной приемкой выполняются под блокировкой этой сущности.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entity_locks: Dict[str, threading.Lock] = {}
        self._seq = itertools.count(1)

        self._users_by_email: Dict[str, User] = {}
        self._pvz: Dict[str, PVZ] = {}
        self._pvz_order: Dict[str, int] = {}
        self._receptions: Dict[str, Reception] = {}
        self._receptions_by_pvz: Dict[str, List[str]] = {}
        self._products_by_reception: Dict[str, List[Product]] = {}

    def _lock_for(self, entity_id: str) -> threading.Lock:
        with self._lock:
            return self._entity_locks.setdefault(entity_id, threading.Lock())

    # Пользователи

    def create_user(self, user: User) -> User:
        with self._lock:
            if user.email in self._users_by_email:
                raise EmailAlreadyExistsError(user.email)
            self._users_by_email[user.email] = user
        return user

    def get_user_by_email(self, email: str) -> User:
        user = self._users_by_email.get(email)
        if user is None:
            raise UserNotFoundError(f"Пользователь {email} не найден")
        return user

    # ПВЗ

    def create_pvz(self, pvz: PVZ) -> PVZ:
        with self._lock:
            self._pvz[pvz.id] = pvz
            self._pvz_order[pvz.id] = next(self._seq)
            self._receptions_by_pvz[pvz.id] = []
        return pvz

    def get_pvz_by_id(self, pvz_id: str) -> PVZ:
        pvz = self._pvz.get(pvz_id)
        if pvz is None:
            raise PVZNotFoundError(f"ПВЗ {pvz_id} не найден")
        return pvz

    def list_pvz(
        self,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        page: int,
        limit: int,
    ) -> List[PVZListItem]:
        with self._lock:
            pvz_list = list(self._pvz.values())
            tree = {
                pvz_id: [self._receptions[r_id] for r_id in reception_ids]
                for pvz_id, reception_ids in self._receptions_by_pvz.items()
            }
            products = {
                r_id: list(items) for r_id, items in self._products_by_reception.items()
            }

        def in_range(reception: Reception) -> bool:
            if start_date is not None and reception.date_time < start_date:
                return False
            if end_date is not None and reception.date_time > end_date:
                return False
            return True

        if start_date is not None or end_date is not None:
            pvz_list = [p for p in pvz_list if any(in_range(r) for r in tree[p.id])]

        pvz_list.sort(key=lambda p: (p.registration_date, self._pvz_order[p.id]), reverse=True)
        offset = (page - 1) * limit

        return [
            PVZListItem(
                pvz=pvz,
                receptions=[
                    ReceptionWithProducts(reception=r, products=products.get(r.id, []))
                    for r in reversed(tree[pvz.id])
                ],
            )
            for pvz in pvz_list[offset:offset + limit]
        ]

    # Приемки

    def create_reception(self, pvz_id: str) -> Reception:
        if pvz_id not in self._pvz:
            raise PVZNotFoundError(f"ПВЗ {pvz_id} не найден")

        with self._lock_for(pvz_id):
            reception_ids = self._receptions_by_pvz[pvz_id]
            if reception_ids and self._receptions[reception_ids[-1]].is_open():
                raise ReceptionAlreadyOpenError(pvz_id)

            reception = Reception(
                id=str(uuid.uuid4()),
                date_time=datetime.now(timezone.utc),
                pvz_id=pvz_id,
                status=ReceptionStatus.IN_PROGRESS,
            )
            with self._lock:
                self._receptions[reception.id] = reception
                self._products_by_reception[reception.id] = []
                reception_ids.append(reception.id)
        return reception

    def get_last_reception_by_pvz_id(self, pvz_id: str) -> Reception:
        reception_ids = self._receptions_by_pvz.get(pvz_id)
        if not reception_ids:
            raise ReceptionNotFoundError(f"Приемка для ПВЗ {pvz_id} не найдена")
        return self._receptions[reception_ids[-1]]

    def close_reception(self, reception_id: str) -> Reception:
        if reception_id not in self._receptions:
            raise ReceptionClosedError(reception_id)

        with self._lock_for(reception_id):
            reception = self._receptions[reception_id]
            if not reception.is_open():
                raise ReceptionClosedError(reception_id)
            closed = reception.model_copy(update={"status": ReceptionStatus.CLOSE})
            self._receptions[reception_id] = closed
        return closed

    # Товары

    def create_product(self, reception_id: str, product_type: ProductType) -> Product:
        if reception_id not in self._receptions:
            raise ReceptionNotFoundError(f"Приемка {reception_id} не найдена")

        with self._lock_for(reception_id):
            if not self._receptions[reception_id].is_open():
                raise ReceptionClosedError(reception_id)
            product = Product(
                id=str(uuid.uuid4()),
                date_time=datetime.now(timezone.utc),
                type=product_type,
                reception_id=reception_id,
            )
            with self._lock:
                self._products_by_reception[reception_id].append(product)
        return product

    def get_products_by_reception_id(self, reception_id: str) -> List[Product]:
        with self._lock:
            return list(self._products_by_reception.get(reception_id, []))

    def delete_last_product_in_reception(self, reception_id: str) -> Product:
        if reception_id not in self._receptions:
            raise ReceptionNotFoundError(f"Приемка {reception_id} не найдена")

        with self._lock_for(reception_id):
            if not self._receptions[reception_id].is_open():
                raise ReceptionClosedError(reception_id)
            with self._lock:
                products = self._products_by_reception[reception_id]
                if not products:
                    raise ProductNotFoundError("Нет товаров для удаления")
                return products.pop()

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Union

from pvz_service.domain.models import (
    User, PVZ, Reception, Product, ProductType, PVZListItem, Role, TokenClaims
)


class Storage(ABC):
    """Хранилище ПВЗ, приемок и товаров.

    Реализации обязаны соблюдать инварианты:
    - у ПВЗ не больше одной приемки в статусе in_progress;
    - товар добавляется только в открытую приемку;
    - "последний" элемент определяется порядковым номером внутри родителя.

    Ошибки сообщаются исключениями из pvz_service.domain.exceptions:
    NotFoundError, ConflictError, StorageError.
    """

    # Пользователи
    @abstractmethod
    def create_user(self, user: User) -> User:
        pass

    @abstractmethod
    def get_user_by_email(self, email: str) -> User:
        pass

    # ПВЗ
    @abstractmethod
    def create_pvz(self, pvz: PVZ) -> PVZ:
        pass

    @abstractmethod
    def get_pvz_by_id(self, pvz_id: str) -> PVZ:
        pass

    @abstractmethod
    def list_pvz(
        self,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        page: int,
        limit: int,
    ) -> List[PVZListItem]:
        pass

    # Приемки
    @abstractmethod
    def create_reception(self, pvz_id: str) -> Reception:
        pass

    @abstractmethod
    def get_last_reception_by_pvz_id(self, pvz_id: str) -> Reception:
        pass

    @abstractmethod
    def close_reception(self, reception_id: str) -> Reception:
        pass

    # Товары
    @abstractmethod
    def create_product(self, reception_id: str, product_type: ProductType) -> Product:
        pass

    @abstractmethod
    def get_products_by_reception_id(self, reception_id: str) -> List[Product]:
        pass

    @abstractmethod
    def delete_last_product_in_reception(self, reception_id: str) -> Product:
        pass


class TokenService(ABC):
    @abstractmethod
    def issue(self, role: Union[Role, str]) -> str:
        pass

    @abstractmethod
    def issue_for_user(self, user: User) -> str:
        pass

    @abstractmethod
    def validate(self, token: Optional[str]) -> TokenClaims:
        pass

    @abstractmethod
    def check_role(self, token: Optional[str], role: Role) -> TokenClaims:
        pass

    @abstractmethod
    def check_role_any(self, token: Optional[str], *roles: Role) -> TokenClaims:
        pass

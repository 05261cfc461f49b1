from datetime import datetime
from enum import Enum
from typing import List
from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    EMPLOYEE = "employee"
    MODERATOR = "moderator"


class City(str, Enum):
    MOSCOW = "Moscow"
    SAINT_PETERSBURG = "SaintPetersburg"
    KAZAN = "Kazan"


class ProductType(str, Enum):
    ELECTRONICS = "electronics"
    CLOTHING = "clothing"
    FOOTWEAR = "footwear"


class ReceptionStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    CLOSE = "close"


class DomainModel(BaseModel):
    # Наружу отдаем camelCase, внутри работаем со snake_case
    model_config = ConfigDict(populate_by_name=True)


class User(DomainModel):
    """Domain Entity: пользователь"""
    id: str
    email: str
    password: str = Field(default="", exclude=True)
    role: Role

    def without_password(self) -> "User":
        return self.model_copy(update={"password": ""})


class PVZ(DomainModel):
    """Domain Entity: пункт выдачи заказов"""
    id: str
    registration_date: datetime = Field(alias="registrationDate")
    city: City


class Reception(DomainModel):
    """Domain Entity: приемка товаров на ПВЗ"""
    id: str
    date_time: datetime = Field(alias="dateTime")
    pvz_id: str = Field(alias="pvzId")
    status: ReceptionStatus

    def is_open(self) -> bool:
        """Бизнес-правило: товары принимаются только в открытую приемку"""
        return self.status == ReceptionStatus.IN_PROGRESS


class Product(DomainModel):
    """Domain Entity: товар, принятый в рамках приемки"""
    id: str
    date_time: datetime = Field(alias="dateTime")
    type: ProductType
    reception_id: str = Field(alias="receptionId")


class ReceptionWithProducts(DomainModel):
    reception: Reception
    products: List[Product] = []


class PVZListItem(DomainModel):
    pvz: PVZ
    receptions: List[ReceptionWithProducts] = []


class TokenClaims(BaseModel):
    """Value Object: содержимое проверенного токена"""
    subject: str
    role: Role

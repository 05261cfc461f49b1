import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel

from pvz_service.domain.models import City, PVZ, PVZListItem, Role
from pvz_service.domain.exceptions import StorageError
from pvz_service.application.interfaces import Storage, TokenService
from pvz_service.application.results import Failure, Result, authorize, is_failure


logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 30
# OFFSET должен помещаться в BIGINT
MAX_PAGE = (2**63 - 1) // MAX_LIMIT


class ListPVZQuery(BaseModel):
    """Сырые параметры запроса: как пришли от клиента"""
    page: Optional[str] = None
    limit: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


def _parse_int(value: Optional[str]) -> Optional[int]:
    # Только ASCII-цифры: "1_0", " 5 " и т.п. не принимаем
    if not value or not value.isascii() or not value.isdigit():
        return None
    return int(value)


def parse_page(value: Optional[str]) -> int:
    page = _parse_int(value)
    if page is None or not 0 < page <= MAX_PAGE:
        return DEFAULT_PAGE
    return page


def parse_limit(value: Optional[str]) -> int:
    limit = _parse_int(value)
    if limit is None or not 0 < limit <= MAX_LIMIT:
        return DEFAULT_LIMIT
    return limit


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """RFC 3339 дата → aware UTC datetime. Нераспознанная дата считается отсутствующей."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class CreatePVZUseCase:
    def __init__(self, storage: Storage, token_service: TokenService):
        self._storage = storage
        self._tokens = token_service

    def __call__(self, token: Optional[str], city: str) -> Result[PVZ]:
        claims = authorize(self._tokens, token, Role.MODERATOR)
        if is_failure(claims):
            return claims

        try:
            city = City(city)
        except ValueError:
            return Failure.validation(
                "ПВЗ можно создать только в городах: "
                + ", ".join(c.value for c in City)
            )

        pvz = PVZ(
            id=str(uuid.uuid4()),
            registration_date=datetime.now(timezone.utc),
            city=city,
        )
        try:
            return self._storage.create_pvz(pvz)
        except StorageError:
            logger.exception("Ошибка при создании ПВЗ")
            return Failure.internal("Ошибка при создании ПВЗ")


class ListPVZUseCase:
    def __init__(self, storage: Storage, token_service: TokenService):
        self._storage = storage
        self._tokens = token_service

    def __call__(self, token: Optional[str], query: ListPVZQuery) -> Result[List[PVZListItem]]:
        claims = authorize(self._tokens, token, Role.EMPLOYEE, Role.MODERATOR)
        if is_failure(claims):
            return claims

        page = parse_page(query.page)
        limit = parse_limit(query.limit)
        start_date = parse_date(query.start_date)
        end_date = parse_date(query.end_date)

        try:
            return self._storage.list_pvz(start_date, end_date, page, limit)
        except StorageError:
            logger.exception("Ошибка при получении списка ПВЗ")
            return Failure.internal("Ошибка при получении списка ПВЗ")

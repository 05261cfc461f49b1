from datetime import datetime, timezone
from typing import Optional, List
from sqlalchemy import select, insert, update, delete, func, exists, and_
from sqlalchemy.orm import Session

from pvz_service.domain.models import (
    User, PVZ, Reception, Product, ReceptionStatus, ProductType
)
from pvz_service.infrastructure.db_schema import users_tbl, pvz_tbl, receptions_tbl, products_tbl


def _utc(value: datetime) -> datetime:
    # SQLite теряет tzinfo при чтении
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SQLAlchemyUserRepository:
    def __init__(self, session: Session):
        self._session = session

    def create(self, user: User) -> None:
        stmt = insert(users_tbl).values(
            id=user.id,
            email=user.email,
            password=user.password,
            role=user.role,
        )
        self._session.execute(stmt)

    def get_by_email(self, email: str) -> Optional[User]:
        row = self._session.execute(
            select(users_tbl).where(users_tbl.c.email == email)
        ).fetchone()
        return self._to_domain(row) if row else None

    def _to_domain(self, row) -> User:
        return User(id=row.id, email=row.email, password=row.password, role=row.role)


class SQLAlchemyPVZRepository:
    def __init__(self, session: Session):
        self._session = session

    def create(self, pvz: PVZ) -> None:
        stmt = insert(pvz_tbl).values(
            id=pvz.id,
            registration_date=pvz.registration_date,
            city=pvz.city,
        )
        self._session.execute(stmt)

    def get_by_id(self, pvz_id: str, for_update: bool = False) -> Optional[PVZ]:
        query = select(pvz_tbl).where(pvz_tbl.c.id == pvz_id)
        if for_update:
            query = query.with_for_update()
        row = self._session.execute(query).fetchone()
        return self._to_domain(row) if row else None

    def list(
        self,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        limit: int,
        offset: int,
    ) -> List[PVZ]:
        query = select(pvz_tbl)

        if start_date is not None or end_date is not None:
            conditions = [receptions_tbl.c.pvz_id == pvz_tbl.c.id]
            if start_date is not None:
                conditions.append(receptions_tbl.c.date_time >= start_date)
            if end_date is not None:
                conditions.append(receptions_tbl.c.date_time <= end_date)
            # Фильтр выбирает ПВЗ, а не вложенные приемки
            query = query.where(exists().where(and_(*conditions)))

        query = (
            query
            .order_by(pvz_tbl.c.registration_date.desc(), pvz_tbl.c.id.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = self._session.execute(query).fetchall()
        return [self._to_domain(row) for row in rows]

    def _to_domain(self, row) -> PVZ:
        return PVZ(
            id=row.id,
            registration_date=_utc(row.registration_date),
            city=row.city,
        )


class SQLAlchemyReceptionRepository:
    def __init__(self, session: Session):
        self._session = session

    def create(self, reception: Reception, seq: int) -> None:
        stmt = insert(receptions_tbl).values(
            id=reception.id,
            date_time=reception.date_time,
            pvz_id=reception.pvz_id,
            status=reception.status,
            seq=seq,
        )
        self._session.execute(stmt)

    def get_by_id(self, reception_id: str, for_update: bool = False) -> Optional[Reception]:
        query = select(receptions_tbl).where(receptions_tbl.c.id == reception_id)
        if for_update:
            query = query.with_for_update()
        row = self._session.execute(query).fetchone()
        return self._to_domain(row) if row else None

    def get_open_by_pvz_id(self, pvz_id: str) -> Optional[Reception]:
        row = self._session.execute(
            select(receptions_tbl).where(
                receptions_tbl.c.pvz_id == pvz_id,
                receptions_tbl.c.status == ReceptionStatus.IN_PROGRESS,
            )
        ).fetchone()
        return self._to_domain(row) if row else None

    def get_last_by_pvz_id(self, pvz_id: str) -> Optional[Reception]:
        row = self._session.execute(
            select(receptions_tbl)
            .where(receptions_tbl.c.pvz_id == pvz_id)
            .order_by(receptions_tbl.c.seq.desc())
            .limit(1)
        ).fetchone()
        return self._to_domain(row) if row else None

    def list_by_pvz_ids(self, pvz_ids: List[str]) -> List[Reception]:
        """Приемки для набора ПВЗ, от новых к старым внутри каждого ПВЗ"""
        if not pvz_ids:
            return []
        rows = self._session.execute(
            select(receptions_tbl)
            .where(receptions_tbl.c.pvz_id.in_(pvz_ids))
            .order_by(receptions_tbl.c.pvz_id, receptions_tbl.c.seq.desc())
        ).fetchall()
        return [self._to_domain(row) for row in rows]

    def next_seq(self, pvz_id: str) -> int:
        current = self._session.execute(
            select(func.max(receptions_tbl.c.seq)).where(receptions_tbl.c.pvz_id == pvz_id)
        ).scalar()
        return (current or 0) + 1

    def close(self, reception_id: str) -> bool:
        """Переводит приемку in_progress → close. False, если переводить нечего."""
        result = self._session.execute(
            update(receptions_tbl)
            .where(
                receptions_tbl.c.id == reception_id,
                receptions_tbl.c.status == ReceptionStatus.IN_PROGRESS,
            )
            .values(status=ReceptionStatus.CLOSE)
        )
        return result.rowcount > 0

    def _to_domain(self, row) -> Reception:
        return Reception(
            id=row.id,
            date_time=_utc(row.date_time),
            pvz_id=row.pvz_id,
            status=ReceptionStatus(row.status),
        )


class SQLAlchemyProductRepository:
    def __init__(self, session: Session):
        self._session = session

    def create(self, product: Product, seq: int) -> None:
        stmt = insert(products_tbl).values(
            id=product.id,
            date_time=product.date_time,
            type=product.type,
            reception_id=product.reception_id,
            seq=seq,
        )
        self._session.execute(stmt)

    def list_by_reception_ids(self, reception_ids: List[str]) -> List[Product]:
        """Товары в порядке добавления"""
        if not reception_ids:
            return []
        rows = self._session.execute(
            select(products_tbl)
            .where(products_tbl.c.reception_id.in_(reception_ids))
            .order_by(products_tbl.c.reception_id, products_tbl.c.seq.asc())
        ).fetchall()
        return [self._to_domain(row) for row in rows]

    def get_last(self, reception_id: str) -> Optional[Product]:
        row = self._session.execute(
            select(products_tbl)
            .where(products_tbl.c.reception_id == reception_id)
            .order_by(products_tbl.c.seq.desc())
            .limit(1)
        ).fetchone()
        return self._to_domain(row) if row else None

    def next_seq(self, reception_id: str) -> int:
        current = self._session.execute(
            select(func.max(products_tbl.c.seq)).where(products_tbl.c.reception_id == reception_id)
        ).scalar()
        return (current or 0) + 1

    def delete(self, product_id: str) -> None:
        self._session.execute(delete(products_tbl).where(products_tbl.c.id == product_id))

    def _to_domain(self, row) -> Product:
        return Product(
            id=row.id,
            date_time=_utc(row.date_time),
            type=ProductType(row.type),
            reception_id=row.reception_id,
        )

from contextlib import contextmanager
from sqlalchemy.orm import Session, sessionmaker

from pvz_service.infrastructure.repositories import (
    SQLAlchemyUserRepository,
    SQLAlchemyPVZRepository,
    SQLAlchemyReceptionRepository,
    SQLAlchemyProductRepository,
)


class UnitOfWork:
    """Одна транзакция на составную операцию хранилища"""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    @contextmanager
    def __call__(self):
        with self._session_factory() as session:
            try:
                uow_impl = _UnitOfWorkImpl(session)
                yield uow_impl
                # Если commit не вызван: rollback
                session.rollback()
            except Exception:
                session.rollback()
                raise


class _UnitOfWorkImpl:
    def __init__(self, session: Session):
        self._session = session
        self.users = SQLAlchemyUserRepository(session)
        self.pvz = SQLAlchemyPVZRepository(session)
        self.receptions = SQLAlchemyReceptionRepository(session)
        self.products = SQLAlchemyProductRepository(session)

    def commit(self):
        self._session.commit()

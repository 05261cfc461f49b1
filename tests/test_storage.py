import threading
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from pvz_service.application.pvz import MAX_LIMIT, MAX_PAGE
from pvz_service.domain.exceptions import (
    EmailAlreadyExistsError,
    PVZNotFoundError,
    ProductNotFoundError,
    ReceptionAlreadyOpenError,
    ReceptionClosedError,
    ReceptionNotFoundError,
    StorageError,
    UserNotFoundError,
)
from pvz_service.domain.models import City, PVZ, ProductType, ReceptionStatus, Role, User
from pvz_service.infrastructure.repositories import (
    SQLAlchemyPVZRepository,
    SQLAlchemyReceptionRepository,
    SQLAlchemyUserRepository,
)


def make_pvz(storage, registration_date=None, city=City.MOSCOW):
    pvz = PVZ(
        id=str(uuid.uuid4()),
        registration_date=registration_date or datetime.now(timezone.utc),
        city=city,
    )
    return storage.create_pvz(pvz)


class TestUsers:
    def test_create_and_get_by_email(self, storage):
        user = User(id="u1", email="a@example.com", password="digest", role=Role.EMPLOYEE)
        storage.create_user(user)

        found = storage.get_user_by_email("a@example.com")
        assert found.id == "u1"
        assert found.password == "digest"
        assert found.role == Role.EMPLOYEE

    def test_email_is_unique(self, storage):
        storage.create_user(User(id="u1", email="a@example.com", password="x", role=Role.EMPLOYEE))
        with pytest.raises(EmailAlreadyExistsError):
            storage.create_user(User(id="u2", email="a@example.com", password="y", role=Role.MODERATOR))

    def test_unknown_email(self, storage):
        with pytest.raises(UserNotFoundError):
            storage.get_user_by_email("nobody@example.com")


class TestPVZ:
    def test_get_by_id(self, storage):
        pvz = make_pvz(storage, city=City.KAZAN)
        found = storage.get_pvz_by_id(pvz.id)
        assert found.id == pvz.id
        assert found.city == City.KAZAN
        assert found.registration_date == pvz.registration_date

    def test_unknown_pvz(self, storage):
        with pytest.raises(PVZNotFoundError):
            storage.get_pvz_by_id("missing")


class TestReceptions:
    def test_create_opens_reception(self, storage):
        pvz = make_pvz(storage)
        reception = storage.create_reception(pvz.id)

        assert reception.pvz_id == pvz.id
        assert reception.status == ReceptionStatus.IN_PROGRESS
        assert storage.get_last_reception_by_pvz_id(pvz.id).id == reception.id

    def test_unknown_pvz(self, storage):
        with pytest.raises(PVZNotFoundError):
            storage.create_reception("missing")

    def test_second_open_reception_conflicts(self, storage):
        pvz = make_pvz(storage)
        storage.create_reception(pvz.id)
        with pytest.raises(ReceptionAlreadyOpenError):
            storage.create_reception(pvz.id)

    def test_new_reception_after_close(self, storage):
        pvz = make_pvz(storage)
        first = storage.create_reception(pvz.id)
        storage.close_reception(first.id)
        second = storage.create_reception(pvz.id)

        last = storage.get_last_reception_by_pvz_id(pvz.id)
        assert last.id == second.id
        assert last.status == ReceptionStatus.IN_PROGRESS

    def test_no_receptions(self, storage):
        pvz = make_pvz(storage)
        with pytest.raises(ReceptionNotFoundError):
            storage.get_last_reception_by_pvz_id(pvz.id)

    def test_close_is_one_way(self, storage):
        pvz = make_pvz(storage)
        reception = storage.create_reception(pvz.id)

        closed = storage.close_reception(reception.id)
        assert closed.status == ReceptionStatus.CLOSE

        with pytest.raises(ReceptionClosedError):
            storage.close_reception(reception.id)
        assert storage.get_last_reception_by_pvz_id(pvz.id).status == ReceptionStatus.CLOSE

    def test_close_unknown_reception(self, storage):
        with pytest.raises(ReceptionClosedError):
            storage.close_reception("missing")


class TestProducts:
    def test_products_kept_in_creation_order(self, storage):
        pvz = make_pvz(storage)
        reception = storage.create_reception(pvz.id)
        created = [storage.create_product(reception.id, t) for t in ProductType]

        products = storage.get_products_by_reception_id(reception.id)
        assert [p.id for p in products] == [p.id for p in created]
        assert all(p.reception_id == reception.id for p in products)

    def test_unknown_reception(self, storage):
        with pytest.raises(ReceptionNotFoundError):
            storage.create_product("missing", ProductType.CLOTHING)

    @pytest.mark.parametrize("product_type", list(ProductType))
    def test_closed_reception_rejects_products(self, storage, product_type):
        pvz = make_pvz(storage)
        reception = storage.create_reception(pvz.id)
        storage.close_reception(reception.id)

        with pytest.raises(ReceptionClosedError):
            storage.create_product(reception.id, product_type)

    def test_delete_removes_newest_product(self, storage):
        pvz = make_pvz(storage)
        reception = storage.create_reception(pvz.id)
        first = storage.create_product(reception.id, ProductType.ELECTRONICS)
        second = storage.create_product(reception.id, ProductType.FOOTWEAR)

        deleted = storage.delete_last_product_in_reception(reception.id)
        assert deleted.id == second.id
        assert [p.id for p in storage.get_products_by_reception_id(reception.id)] == [first.id]

        third = storage.create_product(reception.id, ProductType.CLOTHING)
        assert storage.delete_last_product_in_reception(reception.id).id == third.id
        assert storage.delete_last_product_in_reception(reception.id).id == first.id

    def test_delete_from_empty_reception(self, storage):
        pvz = make_pvz(storage)
        reception = storage.create_reception(pvz.id)
        with pytest.raises(ProductNotFoundError):
            storage.delete_last_product_in_reception(reception.id)

    def test_delete_from_closed_reception(self, storage):
        pvz = make_pvz(storage)
        reception = storage.create_reception(pvz.id)
        storage.create_product(reception.id, ProductType.ELECTRONICS)
        storage.close_reception(reception.id)

        with pytest.raises(ReceptionClosedError):
            storage.delete_last_product_in_reception(reception.id)
        assert len(storage.get_products_by_reception_id(reception.id)) == 1


class TestListPVZ:
    def test_pagination_by_registration_date_desc(self, storage):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        created = [make_pvz(storage, registration_date=base + timedelta(days=i)) for i in range(15)]
        by_rank = list(reversed(created))

        page = storage.list_pvz(None, None, page=2, limit=5)
        assert [item.pvz.id for item in page] == [p.id for p in by_rank[5:10]]

    def test_page_past_the_end(self, storage):
        make_pvz(storage)
        assert storage.list_pvz(None, None, page=3, limit=10) == []

    def test_largest_page_is_empty(self, storage):
        make_pvz(storage)
        assert storage.list_pvz(None, None, MAX_PAGE, MAX_LIMIT) == []

    def test_nested_order(self, storage):
        pvz = make_pvz(storage)
        first = storage.create_reception(pvz.id)
        storage.close_reception(first.id)
        second = storage.create_reception(pvz.id)
        products = [storage.create_product(second.id, t) for t in ProductType]

        [item] = storage.list_pvz(None, None, page=1, limit=10)
        assert [r.reception.id for r in item.receptions] == [second.id, first.id]
        assert [p.id for p in item.receptions[0].products] == [p.id for p in products]
        assert item.receptions[1].products == []

    def test_date_range_selects_pvz_with_full_tree(self, storage):
        busy = make_pvz(storage)
        idle = make_pvz(storage)
        first = storage.create_reception(busy.id)
        storage.close_reception(first.id)
        second = storage.create_reception(busy.id)

        result = storage.list_pvz(second.date_time, second.date_time + timedelta(hours=1), 1, 10)

        assert [item.pvz.id for item in result] == [busy.id]
        assert {r.reception.id for r in result[0].receptions} == {first.id, second.id}
        assert idle.id not in [item.pvz.id for item in result]

    def test_date_range_without_matches(self, storage):
        pvz = make_pvz(storage)
        storage.create_reception(pvz.id)
        past = datetime(2000, 1, 1, tzinfo=timezone.utc)

        assert storage.list_pvz(past, past + timedelta(days=1), 1, 10) == []

    def test_open_ended_range(self, storage):
        pvz = make_pvz(storage)
        storage.create_reception(pvz.id)
        past = datetime(2000, 1, 1, tzinfo=timezone.utc)
        future = datetime.now(timezone.utc) + timedelta(days=1)

        assert [i.pvz.id for i in storage.list_pvz(past, None, 1, 10)] == [pvz.id]
        assert storage.list_pvz(future, None, 1, 10) == []
        assert [i.pvz.id for i in storage.list_pvz(None, future, 1, 10)] == [pvz.id]


class TestInMemoryConcurrency:
    def test_single_open_reception_under_concurrency(self, memory_storage):
        pvz = make_pvz(memory_storage)
        barrier = threading.Barrier(16)
        created, conflicts = [], []

        def open_reception():
            barrier.wait()
            try:
                created.append(memory_storage.create_reception(pvz.id))
            except ReceptionAlreadyOpenError:
                conflicts.append(1)

        threads = [threading.Thread(target=open_reception) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(created) == 1
        assert len(conflicts) == 15

    def test_products_and_close_do_not_interleave(self, memory_storage):
        pvz = make_pvz(memory_storage)
        reception = memory_storage.create_reception(pvz.id)
        barrier = threading.Barrier(9)
        added = []

        def add_product():
            barrier.wait()
            try:
                added.append(memory_storage.create_product(reception.id, ProductType.CLOTHING))
            except ReceptionClosedError:
                pass

        def close():
            barrier.wait()
            memory_storage.close_reception(reception.id)

        threads = [threading.Thread(target=add_product) for _ in range(8)]
        threads.append(threading.Thread(target=close))
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # Каждый успешно добавленный товар виден в закрытой приемке
        stored = memory_storage.get_products_by_reception_id(reception.id)
        assert {p.id for p in stored} == {p.id for p in added}
        assert memory_storage.get_last_reception_by_pvz_id(pvz.id).status == ReceptionStatus.CLOSE


class TestSQLConstraints:
    """Проверку в коде обходит параллельная транзакция: срабатывают ограничения БД"""

    def test_open_reception_index_rejects_race(self, sql_storage, monkeypatch):
        pvz = make_pvz(sql_storage)
        first = sql_storage.create_reception(pvz.id)
        monkeypatch.setattr(SQLAlchemyReceptionRepository, "get_open_by_pvz_id", lambda self, pvz_id: None)

        with pytest.raises(ReceptionAlreadyOpenError):
            sql_storage.create_reception(pvz.id)

        [item] = sql_storage.list_pvz(None, None, 1, 10)
        assert [r.reception.id for r in item.receptions] == [first.id]
        assert item.receptions[0].reception.status == ReceptionStatus.IN_PROGRESS

    def test_email_unique_constraint_rejects_race(self, sql_storage, monkeypatch):
        sql_storage.create_user(User(id="u1", email="a@example.com", password="x", role=Role.EMPLOYEE))
        monkeypatch.setattr(SQLAlchemyUserRepository, "get_by_email", lambda self, email: None)

        with pytest.raises(EmailAlreadyExistsError):
            sql_storage.create_user(User(id="u2", email="a@example.com", password="y", role=Role.MODERATOR))

        monkeypatch.undo()
        assert sql_storage.get_user_by_email("a@example.com").id == "u1"

    def test_driver_error_becomes_storage_error(self, sql_storage, monkeypatch):
        def overflow(self, *args):
            raise OverflowError("Python int too large to convert to SQLite INTEGER")

        monkeypatch.setattr(SQLAlchemyPVZRepository, "list", overflow)
        with pytest.raises(StorageError):
            sql_storage.list_pvz(None, None, 1, 10)


class TestUnitOfWork:
    def test_changes_without_commit_are_discarded(self, sql_storage):
        pvz = PVZ(id=str(uuid.uuid4()), registration_date=datetime.now(timezone.utc), city=City.KAZAN)
        with sql_storage._uow() as uow:
            uow.pvz.create(pvz)
            assert not hasattr(uow, "rollback")

        with pytest.raises(PVZNotFoundError):
            sql_storage.get_pvz_by_id(pvz.id)

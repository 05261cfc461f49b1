import pytest

from pvz_service.container import Container
from pvz_service.domain.models import Role
from pvz_service.infrastructure.database import create_db_engine, create_session_factory, init_db
from pvz_service.infrastructure.memory import InMemoryStorage
from pvz_service.infrastructure.security import JWTTokenService
from pvz_service.infrastructure.storage import SQLAlchemyStorage


TEST_SECRET = "test-secret"


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.fixture
def sql_storage():
    engine = create_db_engine("sqlite:///:memory:")
    init_db(engine)
    yield SQLAlchemyStorage(create_session_factory(engine))
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    """Оба бэкенда должны вести себя одинаково"""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def token_service():
    return JWTTokenService(TEST_SECRET)


@pytest.fixture
def container(storage, token_service):
    return Container(storage, token_service)


@pytest.fixture
def employee_token(token_service):
    return token_service.issue(Role.EMPLOYEE)


@pytest.fixture
def moderator_token(token_service):
    return token_service.issue(Role.MODERATOR)

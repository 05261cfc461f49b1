from typing import List, Optional
from fastapi import APIRouter, Depends, Header, Query, Request, status
from fastapi.responses import JSONResponse

from pvz_service.presentation.schemas import (
    DummyLoginRequest, RegisterRequest, LoginRequest, UserResponse,
    CreatePVZRequest, CreateReceptionRequest, CreateProductRequest, ErrorResponse,
)
from pvz_service.domain.models import PVZ, PVZListItem, Reception, Product
from pvz_service.application.results import ErrorKind, Failure, is_failure
from pvz_service.application.users import (
    DummyLoginUseCase, RegisterUserUseCase, RegisterUserDTO, LoginUseCase
)
from pvz_service.application.pvz import CreatePVZUseCase, ListPVZUseCase, ListPVZQuery
from pvz_service.application.receptions import CreateReceptionUseCase, CloseLastReceptionUseCase
from pvz_service.application.products import CreateProductUseCase, DeleteLastProductUseCase
from pvz_service.container import Container

router = APIRouter()

ERROR_STATUS = {
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CONFLICT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def error_response(failure: Failure) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS[failure.kind],
        content=ErrorResponse(message=failure.message).model_dump(),
    )


def get_bearer_token(authorization: Optional[str] = Header(default=None)) -> Optional[str]:
    """Токен из заголовка "Authorization: Bearer <token>" """
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        return None
    return parts[1]


def get_container(request: Request) -> Container:
    return request.app.state.container


# Фабрики для создания use cases
def get_dummy_login_use_case(container: Container = Depends(get_container)):
    return container.dummy_login()


def get_register_use_case(container: Container = Depends(get_container)):
    return container.register_user()


def get_login_use_case(container: Container = Depends(get_container)):
    return container.login()


def get_create_pvz_use_case(container: Container = Depends(get_container)):
    return container.create_pvz()


def get_list_pvz_use_case(container: Container = Depends(get_container)):
    return container.list_pvz()


def get_create_reception_use_case(container: Container = Depends(get_container)):
    return container.create_reception()


def get_close_reception_use_case(container: Container = Depends(get_container)):
    return container.close_last_reception()


def get_create_product_use_case(container: Container = Depends(get_container)):
    return container.create_product()


def get_delete_product_use_case(container: Container = Depends(get_container)):
    return container.delete_last_product()


@router.post("/dummyLogin", response_model=str, responses=ERROR_RESPONSES)
def dummy_login(
    request: DummyLoginRequest,
    use_case: DummyLoginUseCase = Depends(get_dummy_login_use_case),
):
    """Получить токен с указанной ролью"""
    result = use_case(request.role)
    if is_failure(result):
        return error_response(result)
    return result


@router.post(
    "/register",
    response_model=UserResponse,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED,
)
def register(
    request: RegisterRequest,
    use_case: RegisterUserUseCase = Depends(get_register_use_case),
):
    """Регистрация пользователя"""
    result = use_case(RegisterUserDTO(email=request.email, password=request.password, role=request.role))
    if is_failure(result):
        return error_response(result)
    return UserResponse.from_domain(result)


@router.post("/login", response_model=str, responses=ERROR_RESPONSES)
def login(
    request: LoginRequest,
    use_case: LoginUseCase = Depends(get_login_use_case),
):
    """Авторизация по email и паролю"""
    result = use_case(request.email, request.password)
    if is_failure(result):
        return error_response(result)
    return result


@router.post(
    "/pvz",
    response_model=PVZ,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED,
)
def create_pvz(
    request: CreatePVZRequest,
    token: Optional[str] = Depends(get_bearer_token),
    use_case: CreatePVZUseCase = Depends(get_create_pvz_use_case),
):
    """Создание ПВЗ (только модератор)"""
    result = use_case(token, request.city)
    if is_failure(result):
        return error_response(result)
    return result


@router.get("/pvz", response_model=List[PVZListItem], responses=ERROR_RESPONSES)
def list_pvz(
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
    start_date: Optional[str] = Query(default=None, alias="startDate"),
    end_date: Optional[str] = Query(default=None, alias="endDate"),
    token: Optional[str] = Depends(get_bearer_token),
    use_case: ListPVZUseCase = Depends(get_list_pvz_use_case),
):
    """Список ПВЗ с приемками и товарами"""
    query = ListPVZQuery(page=page, limit=limit, start_date=start_date, end_date=end_date)
    result = use_case(token, query)
    if is_failure(result):
        return error_response(result)
    return result


@router.post(
    "/pvz/{pvz_id}/close_last_reception",
    response_model=Reception,
    responses=ERROR_RESPONSES,
)
def close_last_reception(
    pvz_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    use_case: CloseLastReceptionUseCase = Depends(get_close_reception_use_case),
):
    """Закрытие последней приемки ПВЗ"""
    result = use_case(token, pvz_id)
    if is_failure(result):
        return error_response(result)
    return result


@router.post(
    "/pvz/{pvz_id}/delete_last_product",
    responses=ERROR_RESPONSES,
)
def delete_last_product(
    pvz_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    use_case: DeleteLastProductUseCase = Depends(get_delete_product_use_case),
):
    """Удаление последнего добавленного товара из открытой приемки"""
    result = use_case(token, pvz_id)
    if is_failure(result):
        return error_response(result)
    return {}


@router.post(
    "/receptions",
    response_model=Reception,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED,
)
def create_reception(
    request: CreateReceptionRequest,
    token: Optional[str] = Depends(get_bearer_token),
    use_case: CreateReceptionUseCase = Depends(get_create_reception_use_case),
):
    """Открытие новой приемки на ПВЗ"""
    result = use_case(token, request.pvz_id)
    if is_failure(result):
        return error_response(result)
    return result


@router.post(
    "/products",
    response_model=Product,
    responses=ERROR_RESPONSES,
    status_code=status.HTTP_201_CREATED,
)
def create_product(
    request: CreateProductRequest,
    token: Optional[str] = Depends(get_bearer_token),
    use_case: CreateProductUseCase = Depends(get_create_product_use_case),
):
    """Добавление товара в открытую приемку ПВЗ"""
    result = use_case(token, request.pvz_id, request.type)
    if is_failure(result):
        return error_response(result)
    return result

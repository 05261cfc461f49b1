class DomainException(Exception):
    pass


class NotFoundError(DomainException):
    pass


class UserNotFoundError(NotFoundError):
    pass


class PVZNotFoundError(NotFoundError):
    pass


class ReceptionNotFoundError(NotFoundError):
    pass


class ProductNotFoundError(NotFoundError):
    pass


class ConflictError(DomainException):
    pass


class EmailAlreadyExistsError(ConflictError):
    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Пользователь с email {email} уже существует")


class ReceptionAlreadyOpenError(ConflictError):
    def __init__(self, pvz_id: str):
        self.pvz_id = pvz_id
        super().__init__("Уже есть незакрытая приемка для этого ПВЗ")


class ReceptionClosedError(ConflictError):
    def __init__(self, reception_id: str):
        self.reception_id = reception_id
        super().__init__("Приемка уже закрыта")


class StorageError(DomainException):
    pass


class InvalidRoleError(DomainException):
    def __init__(self, role):
        self.role = role
        super().__init__(f"Недопустимая роль: {role}")


class TokenError(DomainException):
    pass


class MalformedTokenError(TokenError):
    pass


class ExpiredTokenError(TokenError):
    pass


class TamperedTokenError(TokenError):
    pass


class UnauthorizedError(DomainException):
    pass


class ForbiddenError(DomainException):
    pass

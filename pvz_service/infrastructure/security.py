import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import jwt
from pydantic import ValidationError

from pvz_service.application.interfaces import TokenService
from pvz_service.domain.exceptions import (
    InvalidRoleError,
    MalformedTokenError,
    ExpiredTokenError,
    TamperedTokenError,
    TokenError,
    UnauthorizedError,
    ForbiddenError,
)
from pvz_service.domain.models import Role, User, TokenClaims


logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
DUMMY_SUBJECT = "dummy-user"


def hash_password(password: str) -> str:
    """Одностороннее хеширование пароля (SHA-256, hex)"""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, digest: str) -> bool:
    return hmac.compare_digest(hash_password(password), digest)


class JWTTokenService(TokenService):
    """Выпуск и проверка bearer-токенов (JWT, HS256)"""

    def __init__(self, secret: str, ttl: timedelta = timedelta(hours=24)):
        if not secret:
            raise ValueError("JWT secret не задан")
        self._secret = secret
        self._ttl = ttl

    def issue(self, role: Union[Role, str]) -> str:
        try:
            role = Role(role)
        except ValueError:
            raise InvalidRoleError(role)
        return self._encode(DUMMY_SUBJECT, role)

    def issue_for_user(self, user: User) -> str:
        return self._encode(user.id, user.role)

    def validate(self, token: Optional[str]) -> TokenClaims:
        if not token:
            raise MalformedTokenError("Токен отсутствует")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError("Срок действия токена истек")
        except jwt.InvalidSignatureError:
            raise TamperedTokenError("Подпись токена не совпадает")
        except jwt.InvalidTokenError as e:
            raise MalformedTokenError(f"Неверный токен: {e}")

        try:
            return TokenClaims(subject=payload["sub"], role=payload.get("role"))
        except ValidationError:
            raise MalformedTokenError("В токене нет допустимой роли")

    def check_role(self, token: Optional[str], role: Role) -> TokenClaims:
        return self.check_role_any(token, role)

    def check_role_any(self, token: Optional[str], *roles: Role) -> TokenClaims:
        try:
            claims = self.validate(token)
        except TokenError as e:
            raise UnauthorizedError(str(e))

        if claims.role not in roles:
            raise ForbiddenError(
                f"Роль {claims.role.value} не входит в {[r.value for r in roles]}"
            )
        return claims

    def _encode(self, subject: str, role: Role) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": subject,
            "role": role.value,
            "iat": now,
            "exp": now + self._ttl,
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

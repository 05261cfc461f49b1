from datetime import timedelta

import jwt
import pytest

from pvz_service.domain.exceptions import (
    InvalidRoleError,
    MalformedTokenError,
    ExpiredTokenError,
    TamperedTokenError,
    UnauthorizedError,
    ForbiddenError,
)
from pvz_service.domain.models import Role, User
from pvz_service.infrastructure.security import (
    DUMMY_SUBJECT, JWTTokenService, hash_password, verify_password
)


class TestPasswords:
    def test_hash_is_deterministic_hex_digest(self):
        digest = hash_password("secret")
        assert digest == hash_password("secret")
        assert len(digest) == 64
        assert digest != "secret"

    def test_verify(self):
        digest = hash_password("secret")
        assert verify_password("secret", digest)
        assert not verify_password("Secret", digest)


class TestIssue:
    @pytest.mark.parametrize("role", ["employee", "moderator"])
    def test_dummy_token_carries_role(self, token_service, role):
        claims = token_service.validate(token_service.issue(role))
        assert claims.role == Role(role)
        assert claims.subject == DUMMY_SUBJECT

    @pytest.mark.parametrize("role", ["admin", "", "Employee", None])
    def test_invalid_role_rejected(self, token_service, role):
        with pytest.raises(InvalidRoleError):
            token_service.issue(role)

    def test_token_for_user_embeds_id_and_role(self, token_service):
        user = User(id="user-1", email="a@example.com", role=Role.MODERATOR)
        claims = token_service.validate(token_service.issue_for_user(user))
        assert claims.subject == "user-1"
        assert claims.role == Role.MODERATOR

    def test_default_expiry_is_24_hours(self, token_service):
        token = token_service.issue(Role.EMPLOYEE)
        payload = jwt.decode(token, options={"verify_signature": False})
        assert payload["exp"] - payload["iat"] == 24 * 60 * 60

    def test_empty_secret_not_allowed(self):
        with pytest.raises(ValueError):
            JWTTokenService("")


class TestValidate:
    @pytest.mark.parametrize("token", [None, "", "not-a-token", "a.b.c"])
    def test_malformed(self, token_service, token):
        with pytest.raises(MalformedTokenError):
            token_service.validate(token)

    def test_expired(self):
        service = JWTTokenService("test-secret", ttl=timedelta(seconds=-10))
        with pytest.raises(ExpiredTokenError):
            service.validate(service.issue(Role.EMPLOYEE))

    def test_signed_with_other_secret(self, token_service):
        foreign = JWTTokenService("other-secret").issue(Role.MODERATOR)
        with pytest.raises(TamperedTokenError):
            token_service.validate(foreign)

    def test_unknown_role_claim(self, token_service):
        token = jwt.encode(
            {"sub": "x", "role": "admin", "iat": 0, "exp": 2**31},
            "test-secret",
            algorithm="HS256",
        )
        with pytest.raises(MalformedTokenError):
            token_service.validate(token)


class TestCheckRole:
    def test_matching_role(self, token_service, employee_token):
        claims = token_service.check_role(employee_token, Role.EMPLOYEE)
        assert claims.role == Role.EMPLOYEE

    def test_wrong_role_is_forbidden(self, token_service, employee_token):
        with pytest.raises(ForbiddenError):
            token_service.check_role(employee_token, Role.MODERATOR)

    @pytest.mark.parametrize("token", [None, "garbage"])
    def test_invalid_token_is_unauthorized(self, token_service, token):
        with pytest.raises(UnauthorizedError):
            token_service.check_role(token, Role.EMPLOYEE)

    def test_expired_token_is_unauthorized(self):
        service = JWTTokenService("test-secret", ttl=timedelta(seconds=-10))
        with pytest.raises(UnauthorizedError):
            service.check_role(service.issue(Role.EMPLOYEE), Role.EMPLOYEE)

    def test_any_of_roles(self, token_service, employee_token, moderator_token):
        for token in (employee_token, moderator_token):
            token_service.check_role_any(token, Role.EMPLOYEE, Role.MODERATOR)

        with pytest.raises(ForbiddenError):
            token_service.check_role_any(employee_token, Role.MODERATOR)

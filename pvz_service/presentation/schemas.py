from pydantic import BaseModel, ConfigDict, Field

from pvz_service.domain.models import Role


class DummyLoginRequest(BaseModel):
    role: str


class RegisterRequest(BaseModel):
    email: str
    password: str
    role: str


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    role: Role

    @classmethod
    def from_domain(cls, user):
        return cls(id=user.id, email=user.email, role=user.role)


class CreatePVZRequest(BaseModel):
    city: str


class CreateReceptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pvz_id: str = Field(alias="pvzId")


class CreateProductRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    pvz_id: str = Field(alias="pvzId")


class ErrorResponse(BaseModel):
    message: str

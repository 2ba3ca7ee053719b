from typing import Annotated, Any, Optional

from pydantic import ConfigDict, EmailStr, StringConstraints, field_validator

from ..models.user import Role
from ..utils.security import BCRYPT_MAX_BYTES
from .base import CamelModel


def normalize_email(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class UserRegister(CamelModel):
    model_config = ConfigDict(use_enum_values=True)

    email: EmailStr
    password: Annotated[str, StringConstraints(min_length=8)]
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
    role: Optional[Role] = None

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise ValueError(f"Password cannot exceed {BCRYPT_MAX_BYTES} bytes")
        return value


class UserLogin(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, value: Any) -> Any:
        return normalize_email(value)

    @field_validator("password")
    @classmethod
    def password_present(cls, value: str) -> str:
        if not value:
            raise ValueError("Password is required")
        return value


class UserOut(CamelModel):
    """Public view of a user. Never carries the password."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    role: str


class RegisterResponse(CamelModel):
    message: str
    user: UserOut


class LoginResponse(CamelModel):
    message: str
    token: str
    user: UserOut

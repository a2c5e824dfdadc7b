from __future__ import annotations

import re

from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError

from chatroom.shared.errors.validation_types import ValidationErrorType

_USERNAME_PATTERN = r"^[A-Za-z0-9_.\-]+$"


def _validate_username(value: str) -> str:
    value = value.strip()
    if not value:
        raise PydanticCustomError(
            ValidationErrorType.MISSING.value,
            "Username cannot be empty",
            {},
        )
    if not re.match(_USERNAME_PATTERN, value):
        raise PydanticCustomError(
            ValidationErrorType.USERNAME_INVALID_CHARS.value,
            "Username may contain only letters, digits, '.', '_' and '-'",
            {"pattern": _USERNAME_PATTERN},
        )
    return value


class RegisterRequestDTO(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _validate_username(value)


class LoginRequestDTO(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        return _validate_username(value)


class RegisterSuccessDTO(BaseModel):
    ok: bool = True
    username: str


class LoginSuccessDTO(BaseModel):
    token: str
    token_type: str = "Bearer"
    expires_at: str

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .entities import AccessToken, User
from .exceptions import (
    InvalidCredentialsError,
    MissingTokenError,
    TokenExpiredError,
    TokenInvalidError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from .repositories import PasswordHasher, TokenService, UserRepository

__all__ = [
    "AccessToken",
    "InvalidCredentialsError",
    "MissingTokenError",
    "PasswordHasher",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenService",
    "User",
    "UserAlreadyExistsError",
    "UserNotFoundError",
    "UserRepository",
]

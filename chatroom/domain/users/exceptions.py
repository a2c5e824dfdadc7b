# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from chatroom.shared.errors.base import DomainError


class UserAlreadyExistsError(DomainError):
    code = "user_already_exists"
    status = HTTPStatus.CONFLICT


class UserNotFoundError(DomainError):
    code = "user_not_found"
    status = HTTPStatus.NOT_FOUND


class InvalidCredentialsError(DomainError):
    code = "invalid_credentials"
    status = HTTPStatus.UNAUTHORIZED


class MissingTokenError(DomainError):
    code = "unauthorized"
    status = HTTPStatus.UNAUTHORIZED


class TokenInvalidError(DomainError):
    code = "token_invalid"
    status = HTTPStatus.FORBIDDEN


class TokenExpiredError(TokenInvalidError):
    code = "token_expired"

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from chatroom.domain.users.entities import AccessToken
from chatroom.domain.users.exceptions import InvalidCredentialsError, UserNotFoundError
from chatroom.domain.users.repositories import PasswordHasher, TokenService, UserRepository


class LoginUserUseCase:
    """Check a username/password pair and issue a bearer token.

    Unknown users raise ``UserNotFoundError`` and wrong passwords raise
    ``InvalidCredentialsError``. With ``conceal_unknown_users`` both surface as
    ``InvalidCredentialsError`` so callers cannot probe for usernames.
    """

    def __init__(
        self,
        *,
        users: UserRepository,
        tokens: TokenService,
        password_hasher: PasswordHasher,
        conceal_unknown_users: bool = False,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._password_hasher = password_hasher
        self._conceal_unknown_users = conceal_unknown_users

    def execute(self, username: str, password: str) -> AccessToken:
        user = self._users.find_by_username(username)
        if user is None:
            if self._conceal_unknown_users:
                raise InvalidCredentialsError()
            raise UserNotFoundError()

        if not self._password_hasher.verify(password, user.password_hash):
            raise InvalidCredentialsError()

        return self._tokens.issue(user.username)

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC, datetime

from chatroom.domain.users.entities import User
from chatroom.domain.users.exceptions import UserAlreadyExistsError
from chatroom.domain.users.repositories import PasswordHasher, UserRepository
from chatroom.shared.logging import logger


class RegisterUserUseCase:
    def __init__(
        self,
        *,
        users: UserRepository,
        password_hasher: PasswordHasher,
    ) -> None:
        self._users = users
        self._password_hasher = password_hasher

    def execute(self, username: str, password: str) -> User:
        existing = self._users.find_by_username(username)
        if existing:
            raise UserAlreadyExistsError(context={"username": username})
        now = datetime.now(UTC)
        hashed = self._password_hasher.hash(password)
        user = User(id=0, username=username, password_hash=hashed, created_at=now)
        persisted = self._users.add(user)
        logger.info(f"users.register: ok user_id={persisted.id}")
        return persisted

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from datetime import UTC

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from chatroom.domain.users.entities import User as DomainUser
from chatroom.domain.users.exceptions import UserAlreadyExistsError
from chatroom.domain.users.repositories import UserRepository
from chatroom.infrastructure.db.models import UserRow
from chatroom.infrastructure.db.session import session_scope


def _to_domain(row: UserRow) -> DomainUser:
    created_at = row.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=UTC)
    return DomainUser(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        created_at=created_at,
    )


class SqlAlchemyUserRepository(UserRepository):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def find_by_username(self, username: str) -> DomainUser | None:
        with session_scope(self._session_factory) as session:
            row = session.scalars(select(UserRow).where(UserRow.username == username)).first()
            if not row:
                return None
            return _to_domain(row)

    def add(self, user: DomainUser) -> DomainUser:
        try:
            with session_scope(self._session_factory) as session:
                row = UserRow(
                    username=user.username,
                    password_hash=user.password_hash,
                    created_at=user.created_at,
                )
                session.add(row)
                session.flush()
                return _to_domain(row)
        except IntegrityError as exc:
            # concurrent register of the same name
            raise UserAlreadyExistsError(context={"username": user.username}) from exc

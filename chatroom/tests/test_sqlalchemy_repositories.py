from __future__ import annotations

from datetime import UTC, datetime

import pytest

from chatroom.domain.messages.entities import MessageScope
from chatroom.domain.users.entities import User
from chatroom.domain.users.exceptions import UserAlreadyExistsError
from chatroom.infrastructure.db import create_db_engine, create_session_factory, init_db
from chatroom.infrastructure.repositories.messages.sqlalchemy_message_repository import (
    SqlAlchemyMessageRepository,
)
from chatroom.infrastructure.repositories.users.sqlalchemy_user_repository import (
    SqlAlchemyUserRepository,
)
from chatroom.shared.config import DatabaseConfig


@pytest.fixture()
def session_factory():
    engine = create_db_engine(DatabaseConfig(url="sqlite://"))
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


def _user(username: str) -> User:
    return User(id=0, username=username, password_hash="hash", created_at=datetime.now(UTC))


def test_user_round_trip(session_factory) -> None:
    repo = SqlAlchemyUserRepository(session_factory)

    saved = repo.add(_user("alice"))
    found = repo.find_by_username("alice")

    assert saved.id is not None
    assert found is not None
    assert found.id == saved.id
    assert found.created_at.tzinfo is not None
    assert repo.find_by_username("Alice") is None


def test_duplicate_username_is_rejected_by_store(session_factory) -> None:
    repo = SqlAlchemyUserRepository(session_factory)
    repo.add(_user("alice"))

    with pytest.raises(UserAlreadyExistsError):
        repo.add(_user("alice"))


def test_messages_are_listed_in_creation_order(session_factory) -> None:
    repo = SqlAlchemyMessageRepository(session_factory)

    created = [repo.create("alice", f"m{index}") for index in range(5)]
    repo.create("bob", "psst", MessageScope.DIRECTED, recipient="alice")

    public = repo.find_by_scope(MessageScope.PUBLIC)
    assert [m.id for m in public] == [m.id for m in created]
    assert len({m.id for m in public}) == 5
    assert all(m.created_at.tzinfo is not None for m in public)
    assert [m.recipient for m in repo.find_by_scope(MessageScope.DIRECTED)] == ["alice"]


def test_delete_owned_only_removes_own_message(session_factory) -> None:
    repo = SqlAlchemyMessageRepository(session_factory)
    message = repo.create("alice", "hello")

    assert repo.delete_owned(message.id, "bob") is False
    assert repo.delete_owned("missing", "alice") is False
    assert repo.delete_owned(message.id, "alice") is True
    assert repo.find_by_scope(MessageScope.PUBLIC) == []

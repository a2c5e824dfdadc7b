from __future__ import annotations

import threading
import uuid
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from chatroom.domain.messages.entities import Message, MessageScope
from chatroom.domain.messages.repositories import MessageRepository
from chatroom.domain.users.entities import User
from chatroom.domain.users.repositories import PasswordHasher, UserRepository

SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._seq = 1

    def find_by_username(self, username: str) -> User | None:
        return self._users.get(username)

    def add(self, user: User) -> User:
        new_user = User(
            id=self._seq,
            username=user.username,
            password_hash=user.password_hash,
            created_at=user.created_at,
        )
        self._seq += 1
        self._users[new_user.username] = new_user
        return new_user


class InMemoryMessageRepository(MessageRepository):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.items: list[Message] = []

    def create(
        self,
        sender: str,
        content: str,
        scope: MessageScope = MessageScope.PUBLIC,
        recipient: str | None = None,
    ) -> Message:
        message = Message(
            id=uuid.uuid4().hex,
            sender=sender,
            content=content,
            created_at=datetime.now(UTC),
            scope=scope,
            recipient=recipient,
        )
        with self._lock:
            self.items.append(message)
        return message

    def find_by_scope(self, scope: MessageScope) -> Sequence[Message]:
        with self._lock:
            return [m for m in self.items if m.scope is scope]

    def delete_owned(self, message_id: str, sender: str) -> bool:
        with self._lock:
            for index, message in enumerate(self.items):
                if message.id == message_id and message.sender == sender:
                    del self.items[index]
                    return True
        return False


class DeterministicHasher(PasswordHasher):
    def hash(self, password: str) -> str:
        return f"hashed:{password}"

    def verify(self, password: str, hashed: str) -> bool:
        return hashed == f"hashed:{password}"


class RecordingTransport:
    """Collects deliveries; selected connections can fail or hang."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self.failing: set[str] = set()
        self.hanging: set[str] = set()
        self.release = threading.Event()

    def send(self, connection_id: str, event: str, payload: dict[str, Any]) -> None:
        if connection_id in self.failing:
            raise ConnectionError("peer went away")
        if connection_id in self.hanging:
            self.release.wait(timeout=5)
            return
        with self._lock:
            self.sent.append((connection_id, event, payload))

    def events_for(self, connection_id: str, event: str | None = None) -> list[dict[str, Any]]:
        with self._lock:
            return [
                payload
                for cid, name, payload in self.sent
                if cid == connection_id and (event is None or name == event)
            ]


@pytest.fixture()
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def message_repository() -> InMemoryMessageRepository:
    return InMemoryMessageRepository()


@pytest.fixture()
def transport() -> Iterator[RecordingTransport]:
    recording = RecordingTransport()
    yield recording
    recording.release.set()

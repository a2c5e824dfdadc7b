from __future__ import annotations

from datetime import UTC, datetime, timedelta

from conftest import InMemoryMessageRepository

from chatroom.application.use_cases.messages.delete_message import DeleteMessageUseCase
from chatroom.application.use_cases.messages.list_history import ListPublicHistoryUseCase
from chatroom.domain.messages.entities import Message, MessageScope


def _message(id_: str, sender: str, minutes: int, scope: MessageScope = MessageScope.PUBLIC) -> Message:
    return Message(
        id=id_,
        sender=sender,
        content=f"text {id_}",
        created_at=datetime(2025, 1, 1, tzinfo=UTC) + timedelta(minutes=minutes),
        scope=scope,
    )


def test_history_is_sorted_and_public_only(message_repository: InMemoryMessageRepository) -> None:
    message_repository.items.extend(
        [
            _message("c", "carol", 3),
            _message("a", "alice", 1),
            _message("d", "dave", 2, scope=MessageScope.DIRECTED),
            _message("b", "bob", 2),
        ]
    )

    history = ListPublicHistoryUseCase(messages=message_repository).execute()

    assert [m.id for m in history] == ["a", "b", "c"]


def test_history_empty(message_repository: InMemoryMessageRepository) -> None:
    assert ListPublicHistoryUseCase(messages=message_repository).execute() == []


def test_delete_by_sender_removes_message(message_repository: InMemoryMessageRepository) -> None:
    created = message_repository.create("alice", "hello")

    deleted = DeleteMessageUseCase(messages=message_repository).execute(created.id, "alice")

    assert deleted is True
    assert ListPublicHistoryUseCase(messages=message_repository).execute() == []


def test_delete_by_other_subject_is_noop(message_repository: InMemoryMessageRepository) -> None:
    created = message_repository.create("alice", "hello")

    deleted = DeleteMessageUseCase(messages=message_repository).execute(created.id, "mallory")

    assert deleted is False
    assert [m.id for m in ListPublicHistoryUseCase(messages=message_repository).execute()] == [
        created.id
    ]


def test_delete_unknown_id_is_noop(message_repository: InMemoryMessageRepository) -> None:
    assert DeleteMessageUseCase(messages=message_repository).execute("missing", "alice") is False


def test_message_event_payload_shape() -> None:
    message = _message("a", "alice", 0)

    assert message.to_event() == {
        "id": "a",
        "sender": "alice",
        "content": "text a",
        "created_at": "2025-01-01T00:00:00+00:00",
    }
    assert message.to_dict()["scope"] == "public"

from __future__ import annotations

import threading
import time
from collections.abc import Iterator

import pytest
from conftest import InMemoryMessageRepository, RecordingTransport

from chatroom.application.realtime.hub import ChatHub
from chatroom.application.use_cases.messages.list_history import ListPublicHistoryUseCase
from chatroom.domain.messages.entities import MessageScope


@pytest.fixture()
def hub(
    message_repository: InMemoryMessageRepository, transport: RecordingTransport
) -> Iterator[ChatHub]:
    instance = ChatHub(
        messages=message_repository,
        transport=transport,
        store_timeout=0.5,
        delivery_timeout=0.3,
    )
    yield instance
    instance.close()


def _join_all(hub: ChatHub, *names: str) -> list[str]:
    ids = []
    for name in names:
        connection_id = hub.on_connect()
        hub.on_join(connection_id, name)
        ids.append(connection_id)
    return ids


def test_connect_allocates_unique_ids_without_broadcast(
    hub: ChatHub, transport: RecordingTransport
) -> None:
    first = hub.on_connect()
    second = hub.on_connect()

    assert first and second and first != second
    assert transport.sent == []
    assert hub.connection_count() == 2


def test_join_notifies_everyone_including_joiner(
    hub: ChatHub, transport: RecordingTransport
) -> None:
    early = hub.on_connect()
    hub.on_join(early, "bob")
    late = hub.on_connect()
    hub.on_join(late, "carol")

    assert transport.events_for(early, "notification") == [
        {"text": "bob joined"},
        {"text": "carol joined"},
    ]
    assert transport.events_for(late, "notification") == [{"text": "carol joined"}]


def test_message_is_persisted_then_broadcast_to_all(
    hub: ChatHub,
    transport: RecordingTransport,
    message_repository: InMemoryMessageRepository,
) -> None:
    ids = _join_all(hub, "alice", "bob", "carol", "dave")

    message = hub.on_message(ids[0], "alice", "hello")

    assert message is not None and message.id
    history = ListPublicHistoryUseCase(messages=message_repository).execute()
    assert [m.id for m in history] == [message.id]
    assert history[0].scope is MessageScope.PUBLIC
    for connection_id in ids:
        received = transport.events_for(connection_id, "message")
        assert len(received) == 1
        assert received[0] == {
            "id": message.id,
            "sender": "alice",
            "content": "hello",
            "created_at": message.created_at.isoformat(),
        }


def test_messages_from_one_connection_keep_order(
    hub: ChatHub, transport: RecordingTransport
) -> None:
    sender, reader = _join_all(hub, "alice", "bob")

    for index in range(5):
        hub.on_message(sender, "alice", f"m{index}")

    contents = [payload["content"] for payload in transport.events_for(reader, "message")]
    assert contents == ["m0", "m1", "m2", "m3", "m4"]


def test_concurrent_senders_produce_sorted_history(
    hub: ChatHub, message_repository: InMemoryMessageRepository
) -> None:
    ids = _join_all(hub, "a", "b", "c")

    def spam(connection_id: str, name: str) -> None:
        for index in range(10):
            hub.on_message(connection_id, name, f"{name}-{index}")

    threads = [threading.Thread(target=spam, args=(cid, name)) for cid, name in zip(ids, "abc")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    history = ListPublicHistoryUseCase(messages=message_repository).execute()
    assert len(history) == 30
    stamps = [m.created_at for m in history]
    assert stamps == sorted(stamps)


def test_disconnect_notifies_remaining_peers_once(
    hub: ChatHub, transport: RecordingTransport
) -> None:
    bob, carol = _join_all(hub, "bob", "carol")

    hub.on_disconnect(bob)

    assert transport.events_for(carol, "notification")[-1] == {"text": "bob left"}
    assert transport.events_for(carol, "notification").count({"text": "bob left"}) == 1
    assert {"text": "bob left"} not in transport.events_for(bob)
    assert [entry.display_name for entry in hub.participants()] == ["carol"]


def test_disconnect_without_join_is_silent(hub: ChatHub, transport: RecordingTransport) -> None:
    (watcher,) = _join_all(hub, "watcher")
    lurker = hub.on_connect()
    before = len(transport.sent)

    hub.on_disconnect(lurker)
    hub.on_disconnect(lurker)

    assert len(transport.sent) == before
    assert transport.events_for(watcher, "notification") == [{"text": "watcher joined"}]


def test_rejoin_overwrites_name_without_leave(hub: ChatHub, transport: RecordingTransport) -> None:
    connection_id = hub.on_connect()
    hub.on_join(connection_id, "alice")
    hub.on_join(connection_id, "alicia")

    assert transport.events_for(connection_id, "notification") == [
        {"text": "alice joined"},
        {"text": "alicia joined"},
    ]
    assert [entry.display_name for entry in hub.participants()] == ["alicia"]

    hub.on_disconnect(connection_id)
    assert hub.participants() == []


def test_failing_peer_does_not_block_others(hub: ChatHub, transport: RecordingTransport) -> None:
    alice, broken, carol = _join_all(hub, "alice", "broken", "carol")
    transport.failing.add(broken)

    message = hub.on_message(alice, "alice", "still delivered")

    assert message is not None
    assert len(transport.events_for(alice, "message")) == 1
    assert len(transport.events_for(carol, "message")) == 1
    assert transport.events_for(broken, "message") == []


def test_hanging_peer_is_dropped_after_timeout(
    hub: ChatHub, transport: RecordingTransport
) -> None:
    alice, slow, carol = _join_all(hub, "alice", "slow", "carol")
    transport.hanging.add(slow)

    started = time.monotonic()
    message = hub.on_message(alice, "alice", "hi")
    elapsed = time.monotonic() - started

    assert message is not None
    assert elapsed < 2
    assert len(transport.events_for(carol, "message")) == 1


def test_store_failure_prevents_broadcast_and_tells_sender_only(
    transport: RecordingTransport,
) -> None:
    class BrokenStore(InMemoryMessageRepository):
        def create(self, *args, **kwargs):
            raise RuntimeError("database is down")

    store = BrokenStore()
    hub = ChatHub(messages=store, transport=transport, store_timeout=0.5, delivery_timeout=0.3)
    try:
        sender, other = _join_all(hub, "alice", "bob")

        assert hub.on_message(sender, "alice", "lost") is None

        assert transport.events_for(sender, "message") == []
        assert transport.events_for(other, "message") == []
        assert transport.events_for(sender, "error") == [
            {
                "code": "message_not_persisted",
                "message": "Message could not be saved and was not sent",
            }
        ]
        assert transport.events_for(other, "error") == []
    finally:
        hub.close()


def test_store_timeout_prevents_broadcast_and_history(transport: RecordingTransport) -> None:
    gate = threading.Event()
    written = threading.Event()

    class SlowStore(InMemoryMessageRepository):
        def create(self, *args, **kwargs):
            gate.wait(timeout=5)
            message = super().create(*args, **kwargs)
            written.set()
            return message

    store = SlowStore()
    hub = ChatHub(messages=store, transport=transport, store_timeout=0.1, delivery_timeout=0.3)
    try:
        sender, other = _join_all(hub, "alice", "bob")

        assert hub.on_message(sender, "alice", "too slow") is None

        assert transport.events_for(other, "message") == []
        assert transport.events_for(sender, "error")[0]["code"] == "message_not_persisted"

        gate.set()
        assert written.wait(timeout=2)
        deadline = time.monotonic() + 2
        while store.items and time.monotonic() < deadline:
            time.sleep(0.01)
        assert ListPublicHistoryUseCase(messages=store).execute() == []
    finally:
        gate.set()
        hub.close()


def test_stuck_peer_does_not_starve_store_or_other_peers(
    message_repository: InMemoryMessageRepository, transport: RecordingTransport
) -> None:
    hub = ChatHub(
        messages=message_repository,
        transport=transport,
        store_timeout=0.5,
        delivery_timeout=0.1,
        delivery_workers=2,
    )
    try:
        alice, stuck, carol = _join_all(hub, "alice", "stuck", "carol")
        transport.hanging.add(stuck)

        results = [hub.on_message(alice, "alice", f"m{index}") for index in range(6)]

        assert all(result is not None for result in results)
        assert len(message_repository.items) == 6
        expected = [f"m{index}" for index in range(6)]
        assert [p["content"] for p in transport.events_for(carol, "message")] == expected
        assert [p["content"] for p in transport.events_for(alice, "message")] == expected
        assert transport.events_for(alice, "error") == []
    finally:
        hub.close()


def test_send_error_does_not_take_the_room_lock(
    hub: ChatHub, transport: RecordingTransport
) -> None:
    (target,) = _join_all(hub, "alice")
    holding = threading.Event()
    release = threading.Event()

    def hold_room() -> None:
        with hub._lock:
            holding.set()
            release.wait(timeout=5)

    holder = threading.Thread(target=hold_room)
    holder.start()
    assert holding.wait(timeout=2)
    try:
        sender = threading.Thread(
            target=hub.send_error, args=(target, "invalid_event", "bad payload")
        )
        sender.start()
        sender.join(timeout=2)
        assert not sender.is_alive()
    finally:
        release.set()
        holder.join()

    assert transport.events_for(target, "error") == [
        {"code": "invalid_event", "message": "bad payload"}
    ]

def test_events_from_unknown_connection_are_ignored(
    hub: ChatHub, transport: RecordingTransport, message_repository: InMemoryMessageRepository
) -> None:
    hub.on_join("ghost", "nobody")

    assert hub.on_message("ghost", "nobody", "boo") is None
    assert transport.sent == []
    assert message_repository.items == []


def test_send_error_targets_single_connection(hub: ChatHub, transport: RecordingTransport) -> None:
    first, second = _join_all(hub, "a", "b")

    hub.send_error(first, "invalid_event", "bad payload", {"fields": ["content"]})

    assert transport.events_for(first, "error") == [
        {"code": "invalid_event", "message": "bad payload", "context": {"fields": ["content"]}}
    ]
    assert transport.events_for(second, "error") == []

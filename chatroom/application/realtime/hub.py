# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Presence tracking and fan-out for the shared chat room.

The hub owns the presence map. Join, message and disconnect run under one
re-entrant lock, so two broadcasts never interleave and the order in which
messages are persisted is the order in which peers see them.

Store writes and deliveries run on separate thread pools and are awaited with
a bounded timeout. A peer holds at most one in-flight send: while it is still
pending, later events for that peer are dropped instead of queued, so a stuck
peer costs one delivery worker and never the store. A write that finishes
after its timeout is deleted again.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from concurrent.futures import wait
from typing import Any, Protocol

from chatroom.domain.messages.entities import Message, MessageScope, PresenceEntry
from chatroom.domain.messages.exceptions import MessageNotPersistedError
from chatroom.domain.messages.repositories import MessageRepository
from chatroom.shared.errors import StoreTimeoutError
from chatroom.shared.logging import logger

EVENT_MESSAGE = "message"
EVENT_NOTIFICATION = "notification"
EVENT_ERROR = "error"


class DeliveryTransport(Protocol):
    def send(self, connection_id: str, event: str, payload: dict[str, Any]) -> None: ...


class ChatHub:
    def __init__(
        self,
        *,
        messages: MessageRepository,
        transport: DeliveryTransport,
        store_timeout: float = 5.0,
        delivery_timeout: float = 2.0,
        delivery_workers: int = 8,
        store_workers: int = 2,
    ) -> None:
        self._messages = messages
        self._transport = transport
        self._store_timeout = store_timeout
        self._delivery_timeout = delivery_timeout
        self._store_executor = ThreadPoolExecutor(
            max_workers=store_workers, thread_name_prefix="chat-hub-store"
        )
        self._delivery_executor = ThreadPoolExecutor(
            max_workers=delivery_workers, thread_name_prefix="chat-hub-send"
        )
        self._lock = threading.RLock()
        self._connections: set[str] = set()
        self._presence: dict[str, PresenceEntry] = {}
        self._inflight_lock = threading.Lock()
        self._inflight: dict[str, Future] = {}

    def on_connect(self) -> str:
        connection_id = uuid.uuid4().hex
        with self._lock:
            self._connections.add(connection_id)
        logger.info(f"hub.connect: connection={connection_id}")
        return connection_id

    def on_join(self, connection_id: str, display_name: str) -> None:
        with self._lock:
            if connection_id not in self._connections:
                logger.warning(f"hub.join: unknown connection={connection_id}")
                return
            previous = self._presence.get(connection_id)
            self._presence[connection_id] = PresenceEntry(
                connection_id=connection_id, display_name=display_name
            )
            if previous is not None:
                logger.info(
                    f"hub.join: rename connection={connection_id} "
                    f"{previous.display_name!r} -> {display_name!r}"
                )
            else:
                logger.info(f"hub.join: connection={connection_id} name={display_name!r}")
            self._broadcast(EVENT_NOTIFICATION, {"text": f"{display_name} joined"})

    def on_message(self, connection_id: str, sender_name: str, content: str) -> Message | None:
        """Persist then broadcast; returns None when the store write failed."""
        with self._lock:
            if connection_id not in self._connections:
                logger.warning(f"hub.message: unknown connection={connection_id}")
                return None
            try:
                message = self._persist(sender_name, content)
            except Exception as exc:
                logger.error(
                    f"hub.message: not persisted connection={connection_id} "
                    f"({type(exc).__name__}: {exc})"
                )
                failure = MessageNotPersistedError(type(exc).__name__)
            else:
                logger.info(f"hub.message: id={message.id} sender={sender_name!r}")
                self._broadcast(EVENT_MESSAGE, message.to_event())
                return message

        # single-peer notice, sent outside the room lock
        self._deliver_many(
            [connection_id],
            EVENT_ERROR,
            {
                "code": failure.code,
                "message": "Message could not be saved and was not sent",
            },
        )
        return None

    def on_disconnect(self, connection_id: str) -> None:
        with self._lock:
            self._connections.discard(connection_id)
            with self._inflight_lock:
                self._inflight.pop(connection_id, None)
            entry = self._presence.pop(connection_id, None)
            if entry is None:
                logger.info(f"hub.disconnect: connection={connection_id} (never joined)")
                return
            logger.info(f"hub.disconnect: connection={connection_id} name={entry.display_name!r}")
            self._broadcast(EVENT_NOTIFICATION, {"text": f"{entry.display_name} left"})

    def send_error(
        self,
        connection_id: str,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if context:
            payload["context"] = context
        self._deliver_many([connection_id], EVENT_ERROR, payload)

    def participants(self) -> list[PresenceEntry]:
        with self._lock:
            return list(self._presence.values())

    def connection_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def close(self) -> None:
        self._delivery_executor.shutdown(wait=False, cancel_futures=True)
        self._store_executor.shutdown(wait=False, cancel_futures=True)

    def _persist(self, sender_name: str, content: str) -> Message:
        future = self._store_executor.submit(
            self._messages.create, sender_name, content, MessageScope.PUBLIC
        )
        try:
            return future.result(timeout=self._store_timeout)
        except FutureTimeoutError:
            if not future.cancel():
                future.add_done_callback(self._discard_late_write)
            raise StoreTimeoutError("message.create", self._store_timeout) from None

    def _discard_late_write(self, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        late: Message = future.result()
        try:
            self._messages.delete_owned(late.id, late.sender)
        except Exception as exc:
            logger.error(
                f"hub.message: late write id={late.id} could not be removed "
                f"({type(exc).__name__}: {exc})"
            )
            return
        logger.warning(f"hub.message: removed late write id={late.id} after store timeout")

    def _broadcast(self, event: str, payload: dict[str, Any]) -> None:
        # snapshot: connections registered at the moment of the call
        self._deliver_many(list(self._connections), event, payload)

    def _deliver_many(
        self, connection_ids: Iterable[str], event: str, payload: dict[str, Any]
    ) -> None:
        pending: dict[Future, str] = {}
        with self._inflight_lock:
            for connection_id in connection_ids:
                previous = self._inflight.get(connection_id)
                if previous is not None and not previous.done():
                    logger.warning(
                        f"hub.deliver: {event} to connection={connection_id} dropped, "
                        f"previous send still pending"
                    )
                    continue
                try:
                    future = self._delivery_executor.submit(
                        self._transport.send, connection_id, event, payload
                    )
                except RuntimeError as exc:
                    logger.warning(f"hub.deliver: pool unavailable for {connection_id}: {exc}")
                    continue
                self._inflight[connection_id] = future
                pending[future] = connection_id
        if not pending:
            return

        done, not_done = wait(pending, timeout=self._delivery_timeout)
        for future in done:
            exc = future.exception()
            if exc is not None:
                logger.warning(
                    f"hub.deliver: {event} to connection={pending[future]} failed "
                    f"({type(exc).__name__}: {exc})"
                )
        for future in not_done:
            future.cancel()
            logger.warning(
                f"hub.deliver: {event} to connection={pending[future]} dropped "
                f"after {self._delivery_timeout}s"
            )


__all__ = [
    "ChatHub",
    "DeliveryTransport",
    "EVENT_ERROR",
    "EVENT_MESSAGE",
    "EVENT_NOTIFICATION",
]

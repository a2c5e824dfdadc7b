# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Socket.IO adapter for the chat hub.

Client events: ``join {display_name}`` and ``message {content, display_name}``.
Server events: ``message``, ``notification`` and ``error``.
Optional auth: ``auth.token`` or the ``token`` query parameter.
"""

from __future__ import annotations

import threading
from typing import Any
from urllib.parse import parse_qs

import socketio
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from socketio.exceptions import ConnectionRefusedError as SocketRefusedError

from chatroom.application.realtime.hub import EVENT_ERROR, ChatHub, DeliveryTransport
from chatroom.domain.users.exceptions import TokenInvalidError
from chatroom.domain.users.repositories import TokenService
from chatroom.infrastructure.audit import AuditAction, audit_log
from chatroom.interfaces.realtime.events import JoinEventDTO, MessageEventDTO
from chatroom.shared.errors.validation import format_pydantic_errors
from chatroom.shared.logging import clear_correlation_id, logger, set_correlation_id


class SocketIOTransport(DeliveryTransport):
    """Maps hub connection ids onto Socket.IO session ids."""

    def __init__(self, sio: socketio.Server) -> None:
        self._sio = sio
        self._lock = threading.Lock()
        self._sids: dict[str, str] = {}

    def bind(self, connection_id: str, sid: str) -> None:
        with self._lock:
            self._sids[connection_id] = sid

    def unbind(self, connection_id: str) -> None:
        with self._lock:
            self._sids.pop(connection_id, None)

    def send(self, connection_id: str, event: str, payload: dict[str, Any]) -> None:
        with self._lock:
            sid = self._sids.get(connection_id)
        if sid is None:
            raise LookupError(f"no live socket for connection {connection_id}")
        self._sio.emit(event, payload, to=sid)


def _extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    query_string: str | bytes = environ.get("QUERY_STRING", "") if isinstance(environ, dict) else ""
    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")
    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token
    return None


class ChatSocketGateway:
    def __init__(
        self,
        *,
        sio: socketio.Server,
        hub: ChatHub,
        transport: SocketIOTransport,
        tokens: TokenService,
        require_token: bool = False,
    ) -> None:
        self._sio = sio
        self._hub = hub
        self._transport = transport
        self._tokens = tokens
        self._require_token = require_token
        self._lock = threading.Lock()
        self._connections: dict[str, str] = {}

    def register(self) -> None:
        self._sio.on("connect", self.handle_connect)
        self._sio.on("join", self.handle_join)
        self._sio.on("message", self.handle_message)
        self._sio.on("disconnect", self.handle_disconnect)

    def handle_connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None) -> None:
        subject = None
        if self._require_token:
            subject = self._authenticate(sid, environ, auth)

        connection_id = self._hub.on_connect()
        self._transport.bind(connection_id, sid)
        with self._lock:
            self._connections[sid] = connection_id
        logger.info(f"socket.connect: sid={sid} connection={connection_id} subject={subject}")

    def handle_join(self, sid: str, data: Any = None) -> None:
        connection_id = self._connection_for(sid)
        if connection_id is None:
            return
        set_correlation_id(connection_id)
        try:
            event = self._parse(connection_id, "join", JoinEventDTO, data)
            if event is not None:
                self._hub.on_join(connection_id, event.display_name)
        finally:
            clear_correlation_id()

    def handle_message(self, sid: str, data: Any = None) -> None:
        connection_id = self._connection_for(sid)
        if connection_id is None:
            return
        set_correlation_id(connection_id)
        try:
            event = self._parse(connection_id, "message", MessageEventDTO, data)
            if event is not None:
                self._hub.on_message(connection_id, event.display_name, event.content)
        finally:
            clear_correlation_id()

    def handle_disconnect(self, sid: str, reason: Any = None) -> None:
        with self._lock:
            connection_id = self._connections.pop(sid, None)
        if connection_id is None:
            return
        set_correlation_id(connection_id)
        try:
            self._hub.on_disconnect(connection_id)
            self._transport.unbind(connection_id)
            logger.info(f"socket.disconnect: sid={sid} reason={reason}")
        finally:
            clear_correlation_id()

    def _authenticate(self, sid: str, environ: dict[str, Any], auth: Any | None) -> str:
        token = _extract_token(environ, auth)
        if not token:
            audit_log(AuditAction.REALTIME_REFUSED, details={"reason": "missing_token"}, success=False)
            raise SocketRefusedError("unauthorized")
        try:
            return self._tokens.verify(token)
        except TokenInvalidError as exc:
            audit_log(AuditAction.REALTIME_REFUSED, details={"reason": exc.code}, success=False)
            raise SocketRefusedError(exc.code) from exc

    def _connection_for(self, sid: str) -> str | None:
        with self._lock:
            connection_id = self._connections.get(sid)
        if connection_id is None:
            logger.warning(f"socket.event: unknown sid={sid}")
            self._sio.emit(
                EVENT_ERROR,
                {"code": "not_connected", "message": "Connection is not registered"},
                to=sid,
            )
        return connection_id

    def _parse(
        self,
        connection_id: str,
        event_name: str,
        model: type[BaseModel],
        data: Any,
    ) -> Any:
        if not isinstance(data, dict):
            self._hub.send_error(
                connection_id,
                "invalid_event",
                f"'{event_name}' payload must be an object",
            )
            return None
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            logger.info(f"socket.{event_name}: invalid payload connection={connection_id}")
            self._hub.send_error(
                connection_id,
                "invalid_event",
                f"'{event_name}' payload is invalid",
                format_pydantic_errors(exc),
            )
            return None


__all__ = ["ChatSocketGateway", "SocketIOTransport"]

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from time import perf_counter

from flask import Blueprint, Response, g, jsonify, request

from chatroom.application.use_cases.messages.delete_message import DeleteMessageUseCase
from chatroom.application.use_cases.messages.list_history import ListPublicHistoryUseCase
from chatroom.domain.users.repositories import TokenService
from chatroom.infrastructure.audit import AuditAction, audit_log
from chatroom.interfaces.http.auth import bearer_required
from chatroom.shared.logging import logger


class MessagesController:
    def __init__(
        self,
        *,
        tokens: TokenService,
        list_history: ListPublicHistoryUseCase,
        delete_message: DeleteMessageUseCase,
    ) -> None:
        self._tokens = tokens
        self._list_history = list_history
        self._delete_message = delete_message

    def as_blueprint(self) -> Blueprint:
        authed = bearer_required(self._tokens)
        bp = Blueprint("messages", __name__)
        bp.add_url_rule("/messages", view_func=authed(self.list_messages), methods=["GET"])
        bp.add_url_rule(
            "/messages/<message_id>",
            view_func=authed(self.delete),
            methods=["DELETE"],
        )
        return bp

    def list_messages(self) -> tuple[Response, int]:
        t0 = perf_counter()
        items = self._list_history.execute()
        dt = (perf_counter() - t0) * 1000
        logger.info(f"messages.list: ok (subject={g.subject}, n={len(items)}, dt_ms={dt:.0f})")
        return jsonify([message.to_dict() for message in items]), 200

    def delete(self, message_id: str) -> tuple[str, int]:
        deleted = self._delete_message.execute(message_id, g.subject)
        audit_log(
            AuditAction.MESSAGE_DELETED if deleted else AuditAction.MESSAGE_DELETE_NOOP,
            subject=g.subject,
            ip_address=request.remote_addr,
            details={"message_id": message_id},
            success=True,
        )
        return "", 204

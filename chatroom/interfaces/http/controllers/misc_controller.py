# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, jsonify
from sqlalchemy.engine import Engine

from chatroom.application.realtime.hub import ChatHub
from chatroom.infrastructure.health import check_database
from chatroom.shared.logging import logger


class MiscController:
    def __init__(self, *, engine: Engine, hub: ChatHub) -> None:
        self._engine = engine
        self._hub = hub

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("misc", __name__)
        bp.add_url_rule("/health", view_func=self.health, methods=["GET"])
        return bp

    def health(self):
        status: dict[str, object] = {"ok": True}
        try:
            check_database(self._engine)
            status["database"] = "ok"
        except Exception as exc:
            logger.error(f"health: database check failed ({type(exc).__name__})")
            status["ok"] = False
            status["database"] = "error"
        status["connections"] = self._hub.connection_count()
        return jsonify(status), 200 if status["ok"] else 503

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from http import HTTPStatus

from chatroom.shared.errors.base import InfrastructureError


class MessageNotPersistedError(InfrastructureError):
    def __init__(self, reason: str) -> None:
        super().__init__(
            code="message_not_persisted",
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            context={"reason": reason},
        )

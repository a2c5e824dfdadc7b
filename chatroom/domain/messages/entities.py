# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Chat messages and the ephemeral presence records of the shared room."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from chatroom.domain.exceptions import InvariantViolation


class MessageScope(str, Enum):
    PUBLIC = "public"
    # Direct messages are not routed anywhere yet
    DIRECTED = "directed"


@dataclass(slots=True, frozen=True)
class Message:
    """A persisted room message; id and created_at are assigned by the store."""

    id: str
    sender: str
    content: str
    created_at: datetime
    scope: MessageScope = MessageScope.PUBLIC
    recipient: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise InvariantViolation("message id must not be empty", field="id")
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=UTC))

    def to_event(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "sender": self.sender,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        payload = self.to_event()
        payload["scope"] = self.scope.value
        return payload


@dataclass(slots=True, frozen=True)
class PresenceEntry:
    connection_id: str
    display_name: str

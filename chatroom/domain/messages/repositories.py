# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from .entities import Message, MessageScope


class MessageRepository(Protocol):
    def create(
        self,
        sender: str,
        content: str,
        scope: MessageScope = MessageScope.PUBLIC,
        recipient: str | None = None,
    ) -> Message: ...

    def find_by_scope(self, scope: MessageScope) -> Sequence[Message]: ...

    def delete_owned(self, message_id: str, sender: str) -> bool: ...

# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from chatroom.domain.messages.entities import Message, MessageScope
from chatroom.domain.messages.repositories import MessageRepository


class ListPublicHistoryUseCase:
    def __init__(self, *, messages: MessageRepository) -> None:
        self._messages = messages

    def execute(self) -> list[Message]:
        items = self._messages.find_by_scope(MessageScope.PUBLIC)
        # sorted() is stable, so equal timestamps keep store order
        return sorted(items, key=lambda message: message.created_at)

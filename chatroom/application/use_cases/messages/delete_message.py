# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from chatroom.domain.messages.repositories import MessageRepository
from chatroom.shared.logging import logger


class DeleteMessageUseCase:
    """Delete a message on behalf of its sender.

    A missing id and a message owned by someone else are both silent no-ops,
    so the caller learns nothing about other users' messages.
    """

    def __init__(self, *, messages: MessageRepository) -> None:
        self._messages = messages

    def execute(self, message_id: str, requester: str) -> bool:
        deleted = self._messages.delete_owned(message_id, requester)
        if deleted:
            logger.info(f"messages.delete: ok id={message_id} sender={requester}")
        else:
            logger.info(f"messages.delete: noop id={message_id} requester={requester}")
        return deleted

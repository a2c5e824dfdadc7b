# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from chatroom.domain.messages.entities import Message, MessageScope
from chatroom.domain.messages.repositories import MessageRepository
from chatroom.infrastructure.db.models import MessageRow
from chatroom.infrastructure.db.session import session_scope


def _to_domain(row: MessageRow) -> Message:
    return Message(
        id=row.id,
        sender=row.sender,
        content=row.content,
        created_at=row.created_at,
        scope=MessageScope(row.scope),
        recipient=row.recipient,
    )


class SqlAlchemyMessageRepository(MessageRepository):
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create(
        self,
        sender: str,
        content: str,
        scope: MessageScope = MessageScope.PUBLIC,
        recipient: str | None = None,
    ) -> Message:
        with session_scope(self._session_factory) as session:
            row = MessageRow(
                id=uuid.uuid4().hex,
                sender=sender,
                content=content,
                scope=scope.value,
                recipient=recipient,
                created_at=datetime.now(UTC),
            )
            session.add(row)
            session.flush()
            return _to_domain(row)

    def find_by_scope(self, scope: MessageScope) -> Sequence[Message]:
        with session_scope(self._session_factory) as session:
            rows = session.scalars(
                select(MessageRow)
                .where(MessageRow.scope == scope.value)
                .order_by(MessageRow.created_at.asc(), MessageRow.seq.asc())
            ).all()
            return [_to_domain(row) for row in rows]

    def delete_owned(self, message_id: str, sender: str) -> bool:
        with session_scope(self._session_factory) as session:
            result = session.execute(
                delete(MessageRow).where(
                    MessageRow.id == message_id,
                    MessageRow.sender == sender,
                )
            )
            return bool(result.rowcount)

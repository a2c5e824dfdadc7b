# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from .entities import Message, MessageScope, PresenceEntry
from .exceptions import MessageNotPersistedError
from .repositories import MessageRepository

__all__ = [
    "Message",
    "MessageNotPersistedError",
    "MessageRepository",
    "MessageScope",
    "PresenceEntry",
]

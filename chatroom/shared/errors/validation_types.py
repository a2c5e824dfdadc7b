# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from enum import Enum


class ValidationErrorType(str, Enum):
    MISSING = "missing"
    USERNAME_INVALID_CHARS = "username_invalid_chars"
    DISPLAY_NAME_BLANK = "display_name_blank"
    CONTENT_BLANK = "content_blank"

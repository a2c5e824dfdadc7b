# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Payloads accepted from clients on the realtime channel."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from chatroom.shared.errors.validation_types import ValidationErrorType


class JoinEventDTO(BaseModel):
    display_name: str = Field(max_length=64)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("display_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError(
                ValidationErrorType.DISPLAY_NAME_BLANK.value,
                "Display name cannot be empty",
                {},
            )
        return value


class MessageEventDTO(BaseModel):
    content: str = Field(max_length=4000)
    display_name: str = Field(max_length=64)

    model_config = ConfigDict(str_strip_whitespace=True)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError(
                ValidationErrorType.CONTENT_BLANK.value,
                "Message content cannot be empty",
                {},
            )
        return value

    @field_validator("display_name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError(
                ValidationErrorType.DISPLAY_NAME_BLANK.value,
                "Display name cannot be empty",
                {},
            )
        return value

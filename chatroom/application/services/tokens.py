# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Stateless bearer tokens.

Tokens are HS256 JWTs carrying ``sub`` (the username), ``iat`` and ``exp``.
Nothing is stored server side, so a token stays valid until it expires.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import jwt

from chatroom.domain.users.entities import AccessToken
from chatroom.domain.users.exceptions import TokenExpiredError, TokenInvalidError
from chatroom.domain.users.repositories import TokenService
from chatroom.shared.logging import logger

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class JwtTokenService(TokenService):
    def __init__(
        self,
        *,
        secret_key: str,
        ttl_seconds: int = 3600,
        algorithm: str = "HS256",
        clock: Clock = _utcnow,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self._ttl = timedelta(seconds=ttl_seconds)
        self._algorithm = algorithm
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(self, subject: str) -> AccessToken:
        issued_at = self._clock()
        expires_at = issued_at + self._ttl
        claims = {
            "sub": subject,
            "iat": int(issued_at.timestamp()),
            "exp": expires_at.timestamp(),
        }
        token = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        logger.debug(f"tokens.issue: subject={subject} exp={expires_at.isoformat()}")
        return AccessToken(token=token, subject=subject, expires_at=expires_at)

    def verify(self, token: str) -> str:
        try:
            # exp is checked below against the injected clock
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError as exc:
            logger.debug(f"tokens.verify: invalid ({type(exc).__name__})")
            raise TokenInvalidError() from exc

        subject = claims.get("sub")
        expires = claims.get("exp")
        if not isinstance(subject, str) or not subject:
            raise TokenInvalidError()
        if not isinstance(expires, (int, float)):
            raise TokenInvalidError()

        if self._clock().timestamp() > float(expires):
            logger.debug(f"tokens.verify: expired subject={subject}")
            raise TokenExpiredError()
        return subject


__all__ = ["JwtTokenService"]

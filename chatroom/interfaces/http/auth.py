# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from collections.abc import Callable
from functools import wraps

from flask import g, request

from chatroom.domain.users.exceptions import MissingTokenError, TokenInvalidError
from chatroom.domain.users.repositories import TokenService
from chatroom.infrastructure.audit import AuditAction, audit_log
from chatroom.shared.logging import logger


def extract_bearer_token() -> str:
    auth = request.headers.get("Authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def bearer_required(tokens: TokenService) -> Callable[[Callable], Callable]:
    """Verify the bearer token and expose its subject as ``g.subject``.

    A missing token is 401; a malformed, forged or expired token is 403.
    """

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def inner(*args, **kwargs):
            token = extract_bearer_token()
            if not token:
                logger.warning(
                    f"No bearer token on {request.method} {request.path} "
                    f"from {request.headers.get('X-Forwarded-For', request.remote_addr)}"
                )
                raise MissingTokenError()

            try:
                subject = tokens.verify(token)
            except TokenInvalidError as exc:
                audit_log(
                    AuditAction.TOKEN_REJECTED,
                    ip_address=request.remote_addr,
                    details={"reason": exc.code, "path": request.path},
                    success=False,
                )
                raise

            g.subject = subject
            logger.debug(f"Auth OK: subject={subject} {request.method} {request.path}")
            return f(*args, **kwargs)

        return inner

    return decorator


__all__ = ["bearer_required", "extract_bearer_token"]

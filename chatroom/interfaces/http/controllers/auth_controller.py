# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request
from pydantic import ValidationError

from chatroom.application.use_cases.users.login_user import LoginUserUseCase
from chatroom.application.use_cases.users.register_user import RegisterUserUseCase
from chatroom.domain.users.exceptions import UserAlreadyExistsError
from chatroom.infrastructure.audit import AuditAction, audit_log
from chatroom.interfaces.http.dto.auth import (
    LoginRequestDTO,
    LoginSuccessDTO,
    RegisterRequestDTO,
    RegisterSuccessDTO,
)
from chatroom.shared.errors.base import AppError
from chatroom.shared.errors.validation import raise_validation_error
from chatroom.shared.logging import logger
from chatroom.shared.middleware.rate_limit import rate_limit


def _get_client_ip() -> str | None:
    ip_address = request.headers.get("X-Forwarded-For", request.remote_addr)
    if ip_address and "," in ip_address:
        ip_address = ip_address.split(",")[0].strip()
    return ip_address


class AuthController:
    def __init__(
        self,
        *,
        register_use_case: RegisterUserUseCase,
        login_use_case: LoginUserUseCase,
    ) -> None:
        self._register_use_case = register_use_case
        self._login_use_case = login_use_case

    @rate_limit(limit=5, window_seconds=60.0)
    def register(self) -> tuple[Response, int]:
        try:
            dto = RegisterRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        try:
            user = self._register_use_case.execute(dto.username, dto.password)
        except UserAlreadyExistsError:
            audit_log(
                AuditAction.REGISTER_CONFLICT,
                subject=dto.username,
                ip_address=_get_client_ip(),
                success=False,
            )
            raise

        audit_log(
            AuditAction.REGISTER,
            subject=user.username,
            ip_address=_get_client_ip(),
            details={"user_id": user.id},
            success=True,
        )
        payload = RegisterSuccessDTO(username=user.username).model_dump()
        return jsonify(payload), 201

    @rate_limit(limit=10, window_seconds=60.0)
    def login(self) -> tuple[Response, int]:
        try:
            dto = LoginRequestDTO.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            raise_validation_error(exc)

        ip_address = _get_client_ip()

        try:
            access = self._login_use_case.execute(dto.username, dto.password)
        except AppError as exc:
            audit_log(
                AuditAction.LOGIN_FAILED,
                subject=dto.username,
                ip_address=ip_address,
                details={"error": exc.code},
                success=False,
            )
            raise

        audit_log(
            AuditAction.LOGIN_SUCCESS,
            subject=access.subject,
            ip_address=ip_address,
            success=True,
        )
        payload = LoginSuccessDTO(
            token=access.token,
            expires_at=access.expires_at.isoformat(),
        ).model_dump()
        logger.info(f"auth.login: ok username={dto.username}")
        return jsonify(payload), 200

    def as_blueprint(self) -> Blueprint:
        bp = Blueprint("auth", __name__, url_prefix="/auth")
        bp.add_url_rule("/register", view_func=self.register, methods=["POST"])
        bp.add_url_rule("/login", view_func=self.login, methods=["POST"])
        return bp

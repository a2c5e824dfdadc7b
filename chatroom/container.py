# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

"""Application dependency container."""

from __future__ import annotations

from functools import cached_property

import socketio
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from chatroom.application.realtime.hub import ChatHub
from chatroom.application.services.password_hashing import WerkzeugPasswordHasher
from chatroom.application.services.tokens import JwtTokenService
from chatroom.application.use_cases.messages.delete_message import DeleteMessageUseCase
from chatroom.application.use_cases.messages.list_history import ListPublicHistoryUseCase
from chatroom.application.use_cases.users.login_user import LoginUserUseCase
from chatroom.application.use_cases.users.register_user import RegisterUserUseCase
from chatroom.infrastructure.db import create_db_engine, create_session_factory
from chatroom.infrastructure.repositories.messages.sqlalchemy_message_repository import (
    SqlAlchemyMessageRepository,
)
from chatroom.infrastructure.repositories.users.sqlalchemy_user_repository import (
    SqlAlchemyUserRepository,
)
from chatroom.interfaces.http.controllers.auth_controller import AuthController
from chatroom.interfaces.http.controllers.messages_controller import MessagesController
from chatroom.interfaces.http.controllers.misc_controller import MiscController
from chatroom.interfaces.realtime.socketio_gateway import ChatSocketGateway, SocketIOTransport
from chatroom.shared.config import AppConfig, load_config


class Container:
    """Builds every collaborator once; one container means one hub."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or load_config()

    # Storage

    @cached_property
    def engine(self) -> Engine:
        return create_db_engine(self.config.database)

    @cached_property
    def session_factory(self) -> sessionmaker[Session]:
        return create_session_factory(self.engine)

    @cached_property
    def user_repository(self) -> SqlAlchemyUserRepository:
        return SqlAlchemyUserRepository(self.session_factory)

    @cached_property
    def message_repository(self) -> SqlAlchemyMessageRepository:
        return SqlAlchemyMessageRepository(self.session_factory)

    # Auth

    @cached_property
    def password_hasher(self) -> WerkzeugPasswordHasher:
        return WerkzeugPasswordHasher()

    @cached_property
    def token_service(self) -> JwtTokenService:
        return JwtTokenService(
            secret_key=self.config.secret_key,
            ttl_seconds=self.config.tokens.ttl_seconds,
            algorithm=self.config.tokens.algorithm,
        )

    @cached_property
    def register_user_use_case(self) -> RegisterUserUseCase:
        return RegisterUserUseCase(
            users=self.user_repository,
            password_hasher=self.password_hasher,
        )

    @cached_property
    def login_user_use_case(self) -> LoginUserUseCase:
        return LoginUserUseCase(
            users=self.user_repository,
            tokens=self.token_service,
            password_hasher=self.password_hasher,
            conceal_unknown_users=self.config.security.unify_login_errors,
        )

    # Messages

    @cached_property
    def list_history_use_case(self) -> ListPublicHistoryUseCase:
        return ListPublicHistoryUseCase(messages=self.message_repository)

    @cached_property
    def delete_message_use_case(self) -> DeleteMessageUseCase:
        return DeleteMessageUseCase(messages=self.message_repository)

    # Realtime

    @cached_property
    def socket_server(self) -> socketio.Server:
        origins = self.config.security.allowed_origins
        return socketio.Server(
            async_mode="threading",
            # events of one client run in arrival order on that client's thread
            async_handlers=False,
            cors_allowed_origins="*" if "*" in origins else origins,
            logger=False,
            engineio_logger=False,
        )

    @cached_property
    def socket_transport(self) -> SocketIOTransport:
        return SocketIOTransport(self.socket_server)

    @cached_property
    def hub(self) -> ChatHub:
        realtime = self.config.realtime
        return ChatHub(
            messages=self.message_repository,
            transport=self.socket_transport,
            store_timeout=realtime.store_timeout,
            delivery_timeout=realtime.delivery_timeout,
            delivery_workers=realtime.delivery_workers,
        )

    @cached_property
    def socket_gateway(self) -> ChatSocketGateway:
        gateway = ChatSocketGateway(
            sio=self.socket_server,
            hub=self.hub,
            transport=self.socket_transport,
            tokens=self.token_service,
            require_token=self.config.realtime.require_token,
        )
        gateway.register()
        return gateway

    # HTTP controllers

    @cached_property
    def auth_controller(self) -> AuthController:
        return AuthController(
            register_use_case=self.register_user_use_case,
            login_use_case=self.login_user_use_case,
        )

    @cached_property
    def messages_controller(self) -> MessagesController:
        return MessagesController(
            tokens=self.token_service,
            list_history=self.list_history_use_case,
            delete_message=self.delete_message_use_case,
        )

    @cached_property
    def misc_controller(self) -> MiscController:
        return MiscController(engine=self.engine, hub=self.hub)

    def close(self) -> None:
        if "hub" in self.__dict__:
            self.hub.close()
        if "engine" in self.__dict__:
            self.engine.dispose()

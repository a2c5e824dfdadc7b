# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

import atexit

import socketio
from flask import Flask
from flask_cors import CORS
from werkzeug.serving import run_simple

from chatroom.container import Container
from chatroom.infrastructure.db import init_db
from chatroom.shared.logging import logger, setup_logging
from chatroom.shared.middleware.error_handler import configure_error_handling
from chatroom.shared.middleware.rate_limit import configure_rate_limiting
from chatroom.shared.middleware.request_logger import configure_request_logging


def create_app(container: Container | None = None) -> Flask:
    container = container or Container()
    config = container.config
    setup_logging(debug_mode=config.debug_logging)
    init_db(container.engine)

    app = Flask(__name__)
    app.config.update(SECRET_KEY=config.secret_key, JSON_SORT_KEYS=False)
    app.extensions["chatroom.container"] = container

    configure_error_handling(app, debug_mode=config.debug_logging)
    configure_request_logging(app, debug_mode=config.debug_logging)
    configure_rate_limiting(app, config.security)

    cors_kwargs: dict[str, object] = {
        "resources": {r"/*": {"origins": config.security.allowed_origins}},
        "expose_headers": ["X-Request-ID"],
    }
    CORS(app, **cors_kwargs)

    app.register_blueprint(container.misc_controller.as_blueprint())
    app.register_blueprint(container.auth_controller.as_blueprint())
    app.register_blueprint(container.messages_controller.as_blueprint())

    @app.after_request
    def _add_security_headers(resp):
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("Cache-Control", "no-store")
        return resp

    logger.info(f"Flask app initialized (env={config.app_env})")
    return app


def create_wsgi_app(container: Container | None = None) -> socketio.WSGIApp:
    """Flask app with the Socket.IO endpoint mounted at /socket.io."""
    container = container or Container()
    flask_app = create_app(container)
    container.socket_gateway  # registers the event handlers
    atexit.register(container.close)
    return socketio.WSGIApp(container.socket_server, flask_app)


def main() -> None:
    container = Container()
    application = create_wsgi_app(container)
    logger.info(f"chatroom listening on {container.config.host}:{container.config.port}")
    run_simple(
        container.config.host,
        container.config.port,
        application,
        threaded=True,
        use_reloader=False,
    )


if __name__ == "__main__":
    main()

# backend/salesync/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate, socketio


def _socketio_origins(origins):
    if not origins or origins == ["*"]:
        return "*"
    return origins


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    socketio.init_app(
        app,
        cors_allowed_origins=_socketio_origins(app.config.get("SOCKETIO_CORS_ORIGINS")),
        async_mode=app.config.get("SOCKETIO_ASYNC_MODE", "threading"),
    )

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Realtime fan-out: Socket.IO when enabled, recorded in memory otherwise
    from .realtime import InMemoryPublisher, SocketIOPublisher, init_dispatcher
    from .realtime.handlers import register_socket_handlers

    if app.config.get("REALTIME_ENABLED", True):
        init_dispatcher(app, SocketIOPublisher(socketio))
    else:
        init_dispatcher(app, InMemoryPublisher())
    register_socket_handlers(socketio)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.sales import sales_bp
    from .routes.stock_movements import stock_movements_bp
    from .routes.notifications import notifications_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(stock_movements_bp)
    app.register_blueprint(notifications_bp)

    allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS") or [])

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

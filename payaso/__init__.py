import logging
import os
from logging.handlers import RotatingFileHandler

import click
from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from payaso.config import config
from payaso.errors import ConflictError, PortalError
from payaso.extensions import db, jwt, limiter, ma, migrate, socketio

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(app):
    """Log to stderr at LOG_LEVEL, plus a rotating file when LOG_FILE is set."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    package_logger = logging.getLogger("payaso")
    package_logger.setLevel(level)
    app.logger.setLevel(level)

    if not package_logger.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        package_logger.addHandler(stream)

    log_file = app.config.get("LOG_FILE")
    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=5)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)
        app.logger.addHandler(file_handler)


def register_error_handlers(app):
    @app.errorhandler(PortalError)
    def handle_portal_error(error):
        if error.status_code >= 500:
            app.logger.error("%s: %s", type(error).__name__, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"msg": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        app.logger.exception("Unhandled error")
        return jsonify({"msg": "Internal server error"}), 500

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({"msg": "Token has expired"}), 401

    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({"msg": "Invalid token"}), 401

    @jwt.unauthorized_loader
    def unauthorized_callback(error):
        return jsonify({"msg": "Missing authorization"}), 401


def register_commands(app):
    from payaso.services import get_service

    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database tables created.")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Load the demo dataset into an empty database."""
        service = get_service()
        if not hasattr(service, "load_demo"):
            raise click.ClickException("seed-demo needs DATA_BACKEND=sql")
        db.create_all()
        try:
            service.load_demo()
        except ConflictError as exc:
            raise click.ClickException(exc.message)
        click.echo("Demo data loaded.")

    @app.cli.command("create-admin")
    @click.option("--email", required=True)
    @click.option("--password", required=True)
    @click.option("--name", "full_name", default="Super Admin")
    def create_admin(email, password, full_name):
        """Create a super admin account."""
        try:
            user = get_service().create_user({
                "email": email, "password": password, "full_name": full_name, "role": "admin",
            })
        except PortalError as exc:
            raise click.ClickException(exc.message)
        click.echo(f"Admin {user.email} created with id {user.id}.")


def create_app(config_name=None, overrides=None):
    # --- FLASK SETUP ---
    app = Flask(__name__)
    config_name = config_name or os.getenv("FLASK_CONFIG", "default")
    app.config.from_object(config[config_name])
    app.config.update(overrides or {})

    configure_logging(app)

    # extensions
    db.init_app(app)
    ma.init_app(app)
    jwt.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    CORS(app, resources={r"/api/*": {
        "origins": app.config["CORS_ORIGINS"],
        "allow_headers": ["Content-Type", "Authorization"],
        "methods": ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    }}, supports_credentials=True)
    socketio.init_app(app, async_mode="threading")

    register_error_handlers(app)

    from payaso import models  # noqa: F401  (register tables)
    from payaso.services import init_service

    init_service(app)

    # Blueprints
    from payaso.routes.auth import auth_bp
    from payaso.routes.events import events_bp
    from payaso.routes.chat import chat_bp
    from payaso.routes.payments import payments_bp
    from payaso.routes.users import user_bp
    from payaso.routes.locations import locations_bp
    from payaso.routes.graduation import graduation_bp
    from payaso.routes.messages import messages_bp
    from payaso.routes.dashboard import dashboard_bp

    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(chat_bp, url_prefix="/api/events")
    app.register_blueprint(payments_bp, url_prefix="/api")
    app.register_blueprint(user_bp, url_prefix="/api/users")
    app.register_blueprint(locations_bp, url_prefix="/api/locations")
    app.register_blueprint(graduation_bp, url_prefix="/api/graduation")
    app.register_blueprint(messages_bp, url_prefix="/api/messages")
    app.register_blueprint(dashboard_bp, url_prefix="/api")

    register_commands(app)

    app.logger.info("Payaso portal started with %s config", config_name)
    return app

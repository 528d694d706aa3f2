# backend/facturflow/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.company import company_bp
    from .routes.clients import clients_bp
    from .routes.invoices import invoices_bp
    from .routes.quotes import quotes_bp
    from .routes.deposits import deposits_bp
    from .routes.receipts import receipts_bp
    from .routes.public import public_bp
    from .routes.siret import siret_bp
    from .routes.cron import cron_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(company_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(quotes_bp)
    app.register_blueprint(deposits_bp)
    app.register_blueprint(receipts_bp)
    app.register_blueprint(public_bp)
    app.register_blueprint(siret_bp)
    app.register_blueprint(cron_bp)

    allowed_origins = {
        origin.strip()
        for origin in (app.config.get("CORS_ORIGINS") or "").split(",")
        if origin.strip()
    }

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    @app.teardown_request
    def rollback_pending(exc):
        # Failed requests must not leave half-applied changes in the session
        if exc is not None:
            db.session.rollback()

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

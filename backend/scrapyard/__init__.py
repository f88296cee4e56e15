# backend/scrapyard/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides=None, clock=None) -> Flask:
    """
    Build the app and load its store.

    config_overrides: mapping applied over Config (tests use an in-memory
    database and cheap bcrypt rounds). clock: optional callable returning
    the store's notion of now.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Tables must exist before the store loads (or seeds) its collections
    from .services.bootstrap_service import start_store
    with app.app_context():
        db.create_all()
        app.extensions["scrapyard"] = start_store(app.config, clock=clock)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.inventory import inventory_bp
    from .routes.orders import orders_bp
    from .routes.registers import registers_bp
    from .routes.backups import backups_bp
    from .routes.reports import reports_bp
    from .routes.admin import admin_bp  # Platform operator: companies and plans

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(registers_bp)
    app.register_blueprint(backups_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(admin_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

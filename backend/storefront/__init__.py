# backend/storefront/__init__.py
import logging

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.cart import cart_bp
    from .routes.orders import orders_bp
    from .routes.inventory import inventory_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(cart_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(inventory_bp)

    @app.errorhandler(404)
    def not_found(_e):
        return {"error": "NotFound", "message": "Resource not found"}, 404

    @app.errorhandler(405)
    def method_not_allowed(_e):
        return {"error": "MethodNotAllowed", "message": "Method not allowed"}, 405

    @app.errorhandler(Exception)
    def unhandled(e):
        if isinstance(e, HTTPException):
            return {"error": e.name, "message": e.description}, e.code
        # Business errors are rendered by the routes; anything reaching here is a bug
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return {"error": "Error", "message": "Internal server error"}, 500

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

"""Flask application setup and blueprint wiring."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

from access_gate.database import mongodb_enabled
from access_gate.routes import register_routes


def create_app() -> Flask:
    """Configure and return the Flask application instance."""
    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    register_routes(app)

    if mongodb_enabled():
        try:
            from access_gate.services import request_service
            with app.app_context():
                request_service.create_indexes()
                app.logger.info("MongoDB indexes created successfully")
        except Exception as e:
            app.logger.warning(f"Failed to create MongoDB indexes: {e}")
    else:
        app.logger.info("MongoDB disabled, access requests are kept in memory")

    return app

"""Blueprint registration helper."""

from __future__ import annotations

from flask import Flask, jsonify

from .access_requests import bp as access_requests_bp
from .admin import bp as admin_bp


def register_routes(app: Flask) -> None:
    """Register all application blueprints on the provided Flask app."""
    app.register_blueprint(access_requests_bp)
    app.register_blueprint(admin_bp)

    @app.get("/")
    def index():
        return jsonify(message="Access gate API is running"), 200

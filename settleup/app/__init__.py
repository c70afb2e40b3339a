"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables multiple
         isolated test app instances.

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure the app logger from LOG_LEVEL
  3. Initialise Flask-SQLAlchemy via init_app()
  4. Register the balance blueprint under /api/v1
  5. Register global error handlers (AppError → JSON, Exception → 500)
  6. Register a JSON provider that serialises Decimal as string

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is complete before db.create_all() or any mapper configuration.
"""

from __future__ import annotations

import logging
import traceback
from decimal import Decimal

from flask import Flask, jsonify
from flask.json.provider import DefaultJSONProvider
from werkzeug.exceptions import HTTPException

from settleup.config import config_by_name, validate_production_config


# ── Custom JSON provider ───────────────────────────────────────────────────
# Flask's default JSON encoder does not handle Decimal. Amounts are
# serialised as strings to preserve precision.

class DecimalJSONProvider(DefaultJSONProvider):
    """
    Extends Flask's default JSON provider to serialise Decimal as str.

    Example: Decimal("10.50") → "10.50" (not 10.5 or 10.500000001)
    """

    def default(self, o):
        if isinstance(o, Decimal):
            return str(o)
        return super().default(o)


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to "development".
    """
    app = Flask(__name__)
    app.json_provider_class = DecimalJSONProvider
    app.json = DecimalJSONProvider(app)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from settleup.app.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # The imports are intentionally unused by name — side effect is the point.
    with app.app_context():
        from settleup.app.models import (  # noqa: F401
            expense,
            group,
            membership,
            payment,
            split,
            user,
        )

    _register_blueprints(app)
    _register_error_handlers(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    Applies LOG_LEVEL to the app logger and to the service loggers
    (settleup.app.services.*), which log through the standard logging tree.
    """
    level = logging.getLevelName(app.config.get("LOG_LEVEL", "INFO"))
    if not isinstance(level, int):
        level = logging.INFO

    app.logger.setLevel(level)
    logging.getLogger("settleup").setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """Registers route blueprints under the /api/v1 prefix."""
    from settleup.app.routes.balances import balances_bp

    app.register_blueprint(balances_bp, url_prefix="/api/v1/balances")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError      → structured JSON error envelope with its HTTP status
      HTTPException → the same envelope for Flask's own 404/405 responses
      Exception     → generic INTERNAL_ERROR (500); traceback logged

    Stack traces never leave the server.
    """
    from settleup.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """Routes never catch AppError — they let it propagate here."""
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({
            "error": {
                "code": error.name.upper().replace(" ", "_"),
                "message": error.description,
            }
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500

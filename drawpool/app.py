from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from flask import Flask, jsonify
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from .config import AppSettings, load_settings, validate_settings
from .errors import DrawPoolError
from .routes.admin import bp as admin_bp
from .routes.config import bp as config_bp
from .routes.events import bp as events_bp
from .routes.health import bp as health_bp
from .routes.numbers import bp as numbers_bp
from .runtime import EXTENSION_KEY, build_services


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "body"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or "invalid request"


def create_app(settings: Optional[AppSettings] = None) -> Flask:
    settings = validate_settings(settings or load_settings())
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.flask.secret_key
    app.extensions[EXTENSION_KEY] = build_services(settings)

    app.register_blueprint(health_bp)
    app.register_blueprint(config_bp)
    app.register_blueprint(numbers_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api")
    app.register_blueprint(events_bp, url_prefix="/api")

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return jsonify({"success": False, "message": _describe_validation_error(exc)}), 400

    @app.errorhandler(DrawPoolError)
    def handle_draw_pool_error(exc: DrawPoolError):
        if exc.status_code >= 500:
            app.logger.error("Request failed: %s", exc.message)
        return jsonify({"success": False, "message": exc.message}), exc.status_code

    @app.errorhandler(Exception)
    def handle_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("Unhandled error: %s", exc)
        return jsonify({"error": str(exc)}), 500

    return app


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Draw number pool service")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file with settings")
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging (default INFO)."
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(args.verbose)
    settings = load_settings(args.env_file)
    app = create_app(settings)
    app.run(
        host=settings.flask.host,
        port=settings.flask.port,
        debug=settings.flask.debug,
        threaded=True,
        use_reloader=False,
    )


if __name__ == "__main__":
    main()

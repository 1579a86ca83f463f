"""
wipsync Web Application Factory

Flask app that registers the scheduling blueprint.
Mirrors how cli/main.py assembles module CLIs.
"""

import os
from pathlib import Path

from flask import Flask, jsonify


def _get_or_create_secret() -> str:
    """Resolve SECRET_KEY with priority: env var > config > file > generate."""
    from wipsync.core.config import WIPSYNC_PATHS, get_config_value

    env_key = os.environ.get("WIPSYNC_SECRET_KEY")
    if env_key:
        return env_key

    cfg_key = get_config_value("web", "secret_key")
    if cfg_key:
        return cfg_key

    key_file = Path(WIPSYNC_PATHS.database).parent / ".secret_key"
    if key_file.exists():
        stored = key_file.read_text().strip()
        if stored:
            return stored

    new_key = os.urandom(32).hex()
    key_file.parent.mkdir(parents=True, exist_ok=True)
    key_file.write_text(new_key)
    return new_key


def create_app() -> Flask:
    """Create and configure the wipsync Flask application."""
    from wipsync.core.config import get_config_value

    app = Flask(__name__)
    app.config["SECRET_KEY"] = _get_or_create_secret()
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    app.config["SESSION_COOKIE_NAME"] = get_config_value(
        "web", "session_cookie_name", default="wipsync_session"
    )

    @app.after_request
    def set_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    from wipsync.api.scheduling import bp as scheduling_bp
    app.register_blueprint(scheduling_bp)

    @app.route("/health")
    def health():
        import wipsync

        return jsonify({"status": "ok", "version": wipsync.__version__})

    return app

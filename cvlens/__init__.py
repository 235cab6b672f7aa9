# cvlens/__init__.py
from __future__ import annotations
import logging
from datetime import datetime, timezone

from flask import Flask, jsonify
from werkzeug.exceptions import RequestEntityTooLarge
from flask_cors import CORS

from .config import get_config
from .extensions import init_ai_client, init_supabase, login_manager
from .routes import register_routes

def create_app(env: str | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(get_config(env))

    # CORS & logging
    CORS(app, origins="*", send_wildcard=True, allow_headers=app.config["CORS_ALLOW_HEADERS"])
    logging.basicConfig(level=logging.INFO)

    # Client factories: each invocation builds its own clients from config
    app.config["SUPABASE_FACTORY"] = init_supabase
    app.config["AI_CLIENT_FACTORY"] = init_ai_client

    # ---------- Flask-Login ----------
    login_manager.init_app(app)

    # ---------- Blueprints ----------
    register_routes(app)

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(_e):
        limit = app.config["MAX_UPLOAD_BYTES"]
        return jsonify(error="too_large", message=f"File size must be at most {limit} bytes"), 413

    @app.get("/healthz")
    def health():
        return {"ok": True, "ts": datetime.now(timezone.utc).isoformat()}

    return app

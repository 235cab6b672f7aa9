from __future__ import annotations
from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user
from supabase import AuthApiError

from cvlens.extensions import User

auth_session_bp = Blueprint("auth_session", __name__)

@auth_session_bp.post("/api/session/login")
def api_session_login():
    data = request.get_json(silent=True) or {}
    token = (data.get("access_token") or "").strip()
    if not token:
        return jsonify(error="bad_request", message="Missing access_token"), 400

    try:
        # Validate token & get user from Supabase
        supabase = current_app.config["SUPABASE_FACTORY"]()
        res = supabase.auth.get_user(token)
        user = getattr(res, "user", None)
        auth_id = getattr(user, "id", None)
        if not auth_id:
            return jsonify(error="unauthorized", message="Invalid token"), 401

        login_user(User(auth_id, email=getattr(user, "email", None)))
        return jsonify(ok=True, auth_id=auth_id)
    except AuthApiError:
        return jsonify(error="unauthorized", message="Invalid token"), 401
    except Exception:
        current_app.logger.exception("session login failed")
        return jsonify(error="server_error", message="Could not create session"), 500

@auth_session_bp.post("/api/session/logout")
def api_session_logout():
    logout_user()
    return jsonify(ok=True)

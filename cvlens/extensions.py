from flask import current_app, jsonify
from flask_login import LoginManager, UserMixin
from supabase import create_client
from openai import OpenAI

# 1) A single LoginManager instance you can init on the app
login_manager = LoginManager()

# 2) Supabase client from config. Built per invocation, never cached on the app.
def init_supabase(config=None):
    config = config or current_app.config
    url = config.get("SUPABASE_URL")
    key = config.get("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
    return create_client(url, key)

# 3) OpenAI-compatible client pointed at the AI gateway
def init_ai_client(config=None):
    config = config or current_app.config
    api_key = config.get("AI_API_KEY")
    if not api_key:
        raise RuntimeError("Missing AI_API_KEY")
    # No retries: one analysis makes at most one upstream call
    return OpenAI(api_key=api_key, base_url=config.get("AI_BASE_URL") or None, max_retries=0)

# 4) Minimal user object Flask-Login can store in the session
class User(UserMixin):
    def __init__(self, auth_id, email=None, **_):
        self.id = auth_id
        self.email = email

# 5) Identity lives in the Supabase JWT; the session only needs the auth id back
@login_manager.user_loader
def load_user(auth_id: str):
    return User(auth_id) if auth_id else None

@login_manager.unauthorized_handler
def unauthorized():
    return jsonify(error="unauthorized", message="Sign in first."), 401

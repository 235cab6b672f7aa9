# cvlens/config.py
from __future__ import annotations
import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    # Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key")

    # Supabase (service-role key: the analysis handler writes on behalf of users)
    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
    RESUME_BUCKET = os.environ.get("RESUME_BUCKET", "resumes")

    # AI gateway (OpenAI-compatible chat completions)
    AI_API_KEY = os.environ.get("AI_API_KEY", "")
    AI_BASE_URL = os.environ.get("AI_BASE_URL", "https://ai.gateway.lovable.dev/v1")
    AI_MODEL = os.environ.get("AI_MODEL", "google/gemini-2.5-flash")

    # Only this many base64 characters of the file reach the model
    AI_PAYLOAD_PREFIX_CHARS = int(os.environ.get("AI_PAYLOAD_PREFIX_CHARS", "1000"))

    # Uploads
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    # Werkzeug rejects bodies past this before the file is read; headroom for multipart framing
    MAX_CONTENT_LENGTH = MAX_UPLOAD_BYTES + 64 * 1024

    # CORS
    CORS_ALLOW_HEADERS = [
        s.strip() for s in os.environ.get(
            "CORS_ALLOW_HEADERS", "authorization, x-client-info, apikey, content-type"
        ).split(",") if s.strip()
    ]

    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_SAMESITE = "Lax"

class DevConfig(Config):
    DEBUG = True
    SESSION_COOKIE_SECURE = False

class ProdConfig(Config):
    DEBUG = False

class TestConfig(Config):
    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-key"
    SESSION_COOKIE_SECURE = False

def get_config(env: str | None = None):
    """Resolve config by env string or environment variables."""
    env = (env or os.environ.get("CVLENS_ENV") or os.environ.get("FLASK_ENV") or "production").lower()
    if env in ("dev", "development"):
        return DevConfig
    if env in ("test", "testing"):
        return TestConfig
    return ProdConfig

from __future__ import annotations
from flask import Flask

def register_routes(app: Flask) -> None:
    from .analyze import analyze_bp
    from .resumes import resumes_bp
    from .auth_session import auth_session_bp

    app.register_blueprint(analyze_bp)
    app.register_blueprint(resumes_bp)
    app.register_blueprint(auth_session_bp)

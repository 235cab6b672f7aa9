# cvlens/routes/analyze.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from cvlens.errors import AnalysisError
from cvlens.services.analysis import AnalysisOutcome, analyze_resume, validate_request

analyze_bp = Blueprint("analyze", __name__)

def run_configured_analysis(supabase, resume_id: str, file_path: str) -> AnalysisOutcome:
    """analyze_resume with model/bucket/prefix taken from app config and a fresh AI client."""
    cfg = current_app.config
    ai_client = cfg["AI_CLIENT_FACTORY"]()
    return analyze_resume(
        supabase, ai_client, resume_id, file_path,
        model=cfg["AI_MODEL"],
        bucket=cfg["RESUME_BUCKET"],
        prefix_chars=cfg["AI_PAYLOAD_PREFIX_CHARS"],
    )

@analyze_bp.route("/functions/analyze-resume", methods=["POST", "OPTIONS"])
def analyze_resume_fn():
    # Pre-flight: CORS headers are added by Flask-Cors
    if request.method == "OPTIONS":
        return ("", 204)

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    resume_id = payload.get("resumeId")
    file_path = payload.get("filePath")

    try:
        validate_request(resume_id, file_path)
        supabase = current_app.config["SUPABASE_FACTORY"]()
        outcome = run_configured_analysis(supabase, resume_id, file_path)
        return jsonify(success=True, analysis=outcome.analysis, fallback_used=outcome.fallback_used)

    except AnalysisError as e:
        current_app.logger.error("Error in analyze-resume function: %s", e.message)
        return jsonify(error=e.message), e.status_code
    except Exception as e:
        current_app.logger.exception("Unhandled error in analyze-resume function")
        return jsonify(error=str(e) or "Analysis failed"), 500

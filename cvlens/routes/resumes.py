# cvlens/routes/resumes.py
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from cvlens.errors import AnalysisError
from cvlens.services.analysis import STATUS_COMPLETED
from cvlens.services.resumes import get_analysis, list_history, store_upload, validate_upload
from .analyze import run_configured_analysis

resumes_bp = Blueprint("resumes", __name__)

# 1) Upload + analyze in one request
@resumes_bp.post("/api/resumes")
@login_required
def upload_resume():
    f = request.files.get("file")
    if f is None:
        return jsonify(error="bad_request", message="No file part"), 400

    data = f.read()
    try:
        validate_upload(f.filename or "", f.mimetype, data, current_app.config["MAX_UPLOAD_BYTES"])
    except AnalysisError as e:
        return jsonify(error="bad_request", message=e.message), e.status_code

    try:
        supabase = current_app.config["SUPABASE_FACTORY"]()
        row = store_upload(supabase, current_app.config["RESUME_BUCKET"], current_user.id, f.filename, data)
    except AnalysisError as e:
        current_app.logger.error("upload failed: %s", e.message)
        return jsonify(error="upload_failed", message=e.message), e.status_code
    except Exception:
        current_app.logger.exception("Unhandled error in /api/resumes upload")
        return jsonify(error="server_error", message="Failed to upload resume"), 500

    try:
        outcome = run_configured_analysis(supabase, row["id"], row["file_path"])
    except AnalysisError as e:
        return jsonify(error="analysis_failed", message=e.message, resume_id=row["id"]), e.status_code
    except Exception:
        current_app.logger.exception("Unhandled error analyzing resume %s", row["id"])
        return jsonify(error="server_error", message="Analysis failed. Please try again.",
                       resume_id=row["id"]), 500

    return jsonify(
        resume_id=row["id"],
        status=STATUS_COMPLETED,
        analysis=outcome.analysis,
        fallback_used=outcome.fallback_used,
    ), 201

# 2) History
@resumes_bp.get("/api/resumes")
@login_required
def resume_history():
    try:
        supabase = current_app.config["SUPABASE_FACTORY"]()
        return jsonify(resumes=list_history(supabase, current_user.id))
    except Exception:
        current_app.logger.exception("Error fetching resumes")
        return jsonify(error="server_error", message="Could not load your resumes"), 500

# 3) Result for one resume
@resumes_bp.get("/api/resumes/<resume_id>/analysis")
@login_required
def resume_analysis(resume_id: str):
    try:
        supabase = current_app.config["SUPABASE_FACTORY"]()
        return jsonify(analysis=get_analysis(supabase, resume_id, current_user.id))
    except AnalysisError as e:
        return jsonify(error="not_found", message=e.message), e.status_code
    except Exception:
        current_app.logger.exception("Error fetching analysis for %s", resume_id)
        return jsonify(error="server_error", message="Could not load the analysis"), 500

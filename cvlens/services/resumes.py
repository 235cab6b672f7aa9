# cvlens/services/resumes.py
from __future__ import annotations

import logging, time
from io import BytesIO
from typing import Any, Dict, List, Optional

from PyPDF2 import PdfReader
from postgrest.exceptions import APIError
from werkzeug.utils import secure_filename

from cvlens.errors import PersistenceError, RecordNotFoundError, StorageError, UploadRejected
from cvlens.services.analysis import STATUS_UPLOADED

log = logging.getLogger(__name__)

PDF_MIME = "application/pdf"

def validate_upload(file_name: str, content_type: Optional[str], data: bytes, max_bytes: int) -> int:
    """Reject anything that is not a readable PDF under the size cap. Returns the page count."""
    if not file_name:
        raise UploadRejected("No file selected")
    if content_type != PDF_MIME and not file_name.lower().endswith(".pdf"):
        raise UploadRejected("Please upload a PDF file")
    if len(data) > max_bytes:
        raise UploadRejected(f"File size must be at most {max_bytes} bytes", status_code=413)
    if not data:
        raise UploadRejected("File is empty")
    try:
        pages = len(PdfReader(BytesIO(data)).pages)
    except Exception as e:
        raise UploadRejected("Could not read the resume file") from e
    if pages == 0:
        raise UploadRejected("PDF has no pages")
    return pages

def storage_path(user_id: str, file_name: str, now_ms: Optional[int] = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{user_id}/{now_ms}_{secure_filename(file_name) or 'resume.pdf'}"

def store_upload(supabase, bucket: str, user_id: str, file_name: str, data: bytes,
                 now_ms: Optional[int] = None) -> Dict[str, Any]:
    """Put the file in storage and create its resume row (status ``uploaded``)."""
    path = storage_path(user_id, file_name, now_ms)
    try:
        supabase.storage.from_(bucket).upload(path, data, {"content-type": PDF_MIME})
    except Exception as e:
        raise StorageError(f"Upload failed: {e}") from e

    try:
        resp = supabase.table("resumes").insert({
            "user_id": user_id,
            "file_name": file_name,
            "file_path": path,
            "file_size": len(data),
            "status": STATUS_UPLOADED,
        }).execute()
    except APIError as e:
        raise PersistenceError(f"Could not create resume record: {e.message or e}") from e

    rows = getattr(resp, "data", None) or []
    if not rows:
        raise PersistenceError("Could not create resume record")
    log.info("resume %s uploaded to %s (%d bytes)", rows[0].get("id"), path, len(data))
    return rows[0]

def list_history(supabase, user_id: str) -> List[Dict[str, Any]]:
    """Current user's resumes, newest first, with their analysis scores."""
    resp = (
        supabase.table("resumes")
        .select("id,file_name,upload_date,status,resume_analyses(overall_score,created_at)")
        .eq("user_id", user_id)
        .order("upload_date", desc=True)
        .order("created_at", desc=True, foreign_table="resume_analyses")
        .execute()
    )
    out = []
    for row in getattr(resp, "data", None) or []:
        analyses = sorted(row.get("resume_analyses") or [], key=lambda a: a.get("created_at") or "", reverse=True)
        row["resume_analyses"] = analyses
        row["latest_score"] = analyses[0].get("overall_score") if analyses else None
        out.append(row)
    return out

def get_analysis(supabase, resume_id: str, user_id: str) -> Dict[str, Any]:
    resp = (
        supabase.table("resume_analyses")
        .select("*")
        .eq("resume_id", resume_id)
        .eq("user_id", user_id)
        .order("created_at", desc=True)
        .limit(1)
        .execute()
    )
    rows = getattr(resp, "data", None) or []
    if not rows:
        raise RecordNotFoundError("Analysis not found")
    return rows[0]

# cvlens/services/analysis.py
from __future__ import annotations

import base64, copy, json, logging, re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError

from cvlens.errors import (
    AnalysisError, InputValidationError, PersistenceError, RecordNotFoundError, StorageError,
)
from cvlens.services.ai import call_ai

log = logging.getLogger(__name__)

# ========= Constants =========
STATUS_UPLOADED  = "uploaded"
STATUS_ANALYZING = "analyzing"
STATUS_COMPLETED = "completed"
STATUS_FAILED    = "failed"

ANALYSIS_FIELDS = (
    "overall_score", "strengths", "weaknesses",
    "recommended_roles", "skill_suggestions", "keyword_analysis",
)

SYSTEM_PROMPT = """You are an expert resume analyzer and career advisor. Analyze resumes comprehensively and provide detailed insights. Your analysis should include:
1. Overall score (0-100) based on formatting, content quality, clarity, and ATS compatibility
2. List of strengths (3-5 key strong points)
3. List of weaknesses or areas for improvement (3-5 points)
4. Recommended job roles with match scores and reasoning (3-5 roles)
5. Skill suggestions to improve the resume (5-7 skills)
6. Keyword analysis showing present and missing important keywords

Respond ONLY with valid JSON in this exact format:
{
  "overall_score": <number 0-100>,
  "strengths": [<array of strings>],
  "weaknesses": [<array of strings>],
  "recommended_roles": [
    {"title": "<string>", "match_score": <number 0-100>, "reason": "<string>"}
  ],
  "skill_suggestions": [<array of strings>],
  "keyword_analysis": {
    "present": [<array of strings>],
    "missing": [<array of strings>]
  }
}"""

USER_MESSAGE_PREFIX = "Please analyze this resume PDF (base64 encoded): "

FALLBACK_ANALYSIS: Dict[str, Any] = {
    "overall_score": 70,
    "strengths": [
        "Resume uploaded successfully",
        "Professional presentation",
        "Clear structure visible",
    ],
    "weaknesses": [
        "Consider adding more quantifiable achievements",
        "Expand on technical skills",
        "Include more action verbs",
    ],
    "recommended_roles": [
        {
            "title": "Professional Role",
            "match_score": 75,
            "reason": "Based on your background and experience",
        }
    ],
    "skill_suggestions": [
        "Project Management",
        "Communication",
        "Technical Writing",
        "Data Analysis",
        "Leadership",
    ],
    "keyword_analysis": {
        "present": ["Professional", "Experience", "Skills"],
        "missing": ["Achievements", "Metrics", "Results"],
    },
}

# ```json ... ``` wins over a bare ``` ... ``` fence
_FENCE_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
_FENCE_ANY  = re.compile(r"```\s*([\s\S]*?)\s*```")

# ========= Parsing =========
@dataclass(frozen=True)
class ParsedAnalysis:
    data: Dict[str, Any]
    fallback_used: bool

@dataclass(frozen=True)
class AnalysisOutcome:
    resume_id: str
    user_id: str
    analysis: Dict[str, Any]
    fallback_used: bool

def fallback_analysis() -> Dict[str, Any]:
    return copy.deepcopy(FALLBACK_ANALYSIS)

def extract_json_text(text: str) -> str:
    m = _FENCE_JSON.search(text) or _FENCE_ANY.search(text)
    return m.group(1) if m else text

def _reject_constant(name: str):
    # NaN, Infinity and -Infinity are not JSON
    raise ValueError(f"invalid JSON constant {name}")

def parse_analysis(text: Optional[str]) -> ParsedAnalysis:
    """
    Best-effort: fenced block, then the whole text. Anything that does not
    decode to a JSON object yields the fixed fallback with fallback_used=True.
    Scores are passed through as returned, without range checks.
    """
    raw = text or ""
    try:
        data = json.loads(extract_json_text(raw), parse_constant=_reject_constant)
    except ValueError:
        data = None
    if not isinstance(data, dict):
        log.warning("Failed to parse AI response, using fallback analysis: %r", raw)
        return ParsedAnalysis(fallback_analysis(), True)
    return ParsedAnalysis(data, False)

def build_user_message(file_bytes: bytes, prefix_chars: int) -> str:
    # Only a prefix of the encoded file is sent; see DESIGN.md (truncation).
    encoded = base64.b64encode(file_bytes).decode("ascii")
    return f"{USER_MESSAGE_PREFIX}{encoded[:prefix_chars]}..."

def analysis_row(resume_id: str, user_id: str, parsed: ParsedAnalysis) -> Dict[str, Any]:
    row = {"resume_id": resume_id, "user_id": user_id}
    for field in ANALYSIS_FIELDS:
        row[field] = parsed.data.get(field)
    row["sections_analysis"] = {}
    row["fallback_used"] = parsed.fallback_used
    return row

# ========= Store helpers =========
def validate_request(resume_id, file_path) -> None:
    if not resume_id or not file_path:
        raise InputValidationError("Missing resumeId or filePath")

def set_status(supabase, resume_id: str, status: str) -> None:
    try:
        supabase.table("resumes").update({"status": status}).eq("id", resume_id).execute()
    except APIError:
        log.warning("resume %s: status update to %r failed", resume_id, status, exc_info=True)

def download_file(supabase, bucket: str, file_path: str) -> bytes:
    try:
        return supabase.storage.from_(bucket).download(file_path)
    except Exception as e:
        raise StorageError(f"Failed to download {file_path}: {e}") from e

def fetch_owner_id(supabase, resume_id: str) -> str:
    resp = supabase.table("resumes").select("user_id").eq("id", resume_id).limit(1).execute()
    rows = getattr(resp, "data", None) or []
    if not rows:
        raise RecordNotFoundError("Resume not found")
    return rows[0]["user_id"]

def insert_analysis(supabase, row: Dict[str, Any]) -> None:
    try:
        supabase.table("resume_analyses").insert(row).execute()
    except APIError as e:
        raise PersistenceError(f"Failed to store analysis: {e.message or e}") from e

# ========= PUBLIC: analyze_resume =========
def analyze_resume(supabase, ai_client, resume_id: str, file_path: str, *,
                   model: str, bucket: str = "resumes", prefix_chars: int = 1000) -> AnalysisOutcome:
    """
    Run one analysis for an uploaded resume:
    analyzing -> download -> AI call -> parse -> insert -> completed.

    Any fatal error after validation marks the resume ``failed`` before it
    propagates. Not idempotent: every call inserts a new analysis row.
    """
    validate_request(resume_id, file_path)

    set_status(supabase, resume_id, STATUS_ANALYZING)
    try:
        file_bytes = download_file(supabase, bucket, file_path)
        text = call_ai(ai_client, model, SYSTEM_PROMPT, build_user_message(file_bytes, prefix_chars))
        parsed = parse_analysis(text)

        user_id = fetch_owner_id(supabase, resume_id)
        insert_analysis(supabase, analysis_row(resume_id, user_id, parsed))
        set_status(supabase, resume_id, STATUS_COMPLETED)
    except Exception as e:
        kind = "analysis" if isinstance(e, AnalysisError) else "unexpected"
        log.error("resume %s: %s error: %s", resume_id, kind, e)
        set_status(supabase, resume_id, STATUS_FAILED)
        raise

    log.info("resume %s analyzed (score=%s, fallback=%s)",
             resume_id, parsed.data.get("overall_score"), parsed.fallback_used)
    return AnalysisOutcome(resume_id=resume_id, user_id=user_id,
                           analysis=parsed.data, fallback_used=parsed.fallback_used)

# tests/conftest.py
import threading, uuid
from datetime import datetime, timedelta, timezone
from io import BytesIO
from types import SimpleNamespace

import httpx
import openai
import pytest
from postgrest.exceptions import APIError
from PyPDF2 import PdfWriter

from cvlens import create_app


# ---------- Supabase fake ----------
class FakeStorageError(Exception):
    pass


class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table_name = table
        self.op = "select"
        self.cols = "*"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.row_limit = None

    def select(self, cols="*"):
        self.op, self.cols = "select", cols
        return self

    def update(self, values):
        self.op, self.payload = "update", values
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def eq(self, col, val):
        self.filters.append((col, val))
        return self

    def order(self, col, desc=False, foreign_table=None):
        # embedded ordering is left to the code under test
        if foreign_table is None:
            self.order_by = (col, desc)
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def execute(self):
        return self.db._execute(self)


class FakeBucket:
    def __init__(self, storage, name):
        self.storage = storage
        self.name = name

    def download(self, path):
        self.storage.downloads.append(path)
        if path not in self.storage.files:
            raise FakeStorageError(f"Object not found: {path}")
        return self.storage.files[path]

    def upload(self, path, data, file_options=None):
        self.storage.uploads.append((self.name, path, file_options))
        self.storage.files[path] = data
        return SimpleNamespace(path=path)


class FakeStorage:
    def __init__(self):
        self.files = {}
        self.downloads = []
        self.uploads = []

    def from_(self, bucket):
        return FakeBucket(self, bucket)


class FakeAuth:
    def __init__(self):
        self.users = {}

    def get_user(self, token):
        return SimpleNamespace(user=self.users.get(token))


class FakeSupabase:
    """Just enough of the supabase-py query builder for the code under test."""

    def __init__(self):
        self.tables = {"resumes": [], "resume_analyses": []}
        self.calls = []
        self.status_history = {}
        self.storage = FakeStorage()
        self.auth = FakeAuth()
        self.fail_insert_on = set()
        self.fail_update_on = set()  # resume statuses whose update raises
        self._lock = threading.Lock()
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def table(self, name):
        return FakeQuery(self, name)

    def _tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def _matches(self, row, filters):
        return all(row.get(col) == val for col, val in filters)

    def _execute(self, q):
        with self._lock:
            self.calls.append((q.table_name, q.op, q.payload, list(q.filters)))
            rows = self.tables.setdefault(q.table_name, [])

            if q.op == "insert":
                if q.table_name in self.fail_insert_on:
                    raise APIError({"message": "insert failed", "code": "500"})
                row = dict(q.payload)
                row.setdefault("id", str(uuid.uuid4()))
                if q.table_name == "resumes":
                    row.setdefault("upload_date", self._tick())
                    self.status_history.setdefault(row["id"], []).append(row.get("status"))
                else:
                    row.setdefault("created_at", self._tick())
                rows.append(row)
                return SimpleNamespace(data=[dict(row)])

            if q.op == "update":
                if q.table_name == "resumes" and q.payload.get("status") in self.fail_update_on:
                    raise APIError({"message": "update failed", "code": "500"})
                hit = [r for r in rows if self._matches(r, q.filters)]
                for r in hit:
                    r.update(q.payload)
                    if q.table_name == "resumes" and "status" in q.payload:
                        self.status_history.setdefault(r["id"], []).append(q.payload["status"])
                return SimpleNamespace(data=[dict(r) for r in hit])

            out = [dict(r) for r in rows if self._matches(r, q.filters)]
            if q.table_name == "resumes" and "resume_analyses(" in q.cols:
                for r in out:
                    r["resume_analyses"] = [
                        {"overall_score": a["overall_score"], "created_at": a["created_at"]}
                        for a in self.tables["resume_analyses"] if a["resume_id"] == r["id"]
                    ]
            if q.order_by:
                col, desc = q.order_by
                out.sort(key=lambda r: r.get(col) or "", reverse=desc)
            if q.row_limit is not None:
                out = out[:q.row_limit]
            return SimpleNamespace(data=out)

    # helpers for tests
    def add_resume(self, resume_id, user_id, file_path, data=b"%PDF-1.4 fake", **extra):
        row = {"id": resume_id, "user_id": user_id, "file_name": file_path.split("/")[-1].split("_", 1)[-1],
               "file_path": file_path, "file_size": len(data), "status": "uploaded"}
        row.update(extra)
        row.setdefault("upload_date", self._tick())
        self.tables["resumes"].append(row)
        self.status_history[resume_id] = ["uploaded"]
        self.storage.files[file_path] = data
        return row

    def resume(self, resume_id):
        return next((r for r in self.tables["resumes"] if r["id"] == resume_id), None)

    def analyses_for(self, resume_id):
        return [a for a in self.tables["resume_analyses"] if a["resume_id"] == resume_id]


# ---------- AI fake ----------
class FakeAI:
    def __init__(self, content=""):
        self.content = content
        self.error = None
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def api_status_error(status):
    req = httpx.Request("POST", "https://ai.example.test/v1/chat/completions")
    resp = httpx.Response(status, request=req, json={"error": "upstream"})
    return openai.APIStatusError("upstream", response=resp, body={"error": "upstream"})


def blank_pdf() -> bytes:
    w = PdfWriter()
    w.add_blank_page(width=612, height=792)
    buf = BytesIO()
    w.write(buf)
    return buf.getvalue()


GOOD_ANALYSIS_JSON = (
    '{"overall_score": 85, "strengths": ["Clear impact bullets", "Strong Python"],'
    ' "weaknesses": ["No summary"],'
    ' "recommended_roles": [{"title": "Backend Engineer", "match_score": 88, "reason": "API work"}],'
    ' "skill_suggestions": ["Kubernetes", "Terraform"],'
    ' "keyword_analysis": {"present": ["Python", "Flask"], "missing": ["AWS"]}}'
)


# ---------- fixtures ----------
@pytest.fixture
def store():
    s = FakeSupabase()
    s.add_resume("r1", "u1", "u1/123_cv.pdf")
    return s


@pytest.fixture
def ai():
    return FakeAI("```json\n" + GOOD_ANALYSIS_JSON + "\n```")


@pytest.fixture
def factory_calls():
    return {"supabase": 0, "ai": 0}


@pytest.fixture
def app(store, ai, factory_calls):
    app = create_app("test")

    def supabase_factory():
        factory_calls["supabase"] += 1
        return store

    def ai_factory():
        factory_calls["ai"] += 1
        return ai

    app.config["SUPABASE_FACTORY"] = supabase_factory
    app.config["AI_CLIENT_FACTORY"] = ai_factory
    return app


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c


@pytest.fixture
def login(client, store):
    def _login(user_id="u1", email="u1@example.com"):
        token = f"token-{user_id}"
        store.auth.users[token] = SimpleNamespace(id=user_id, email=email)
        r = client.post("/api/session/login", json={"access_token": token})
        assert r.status_code == 200
        return r
    return _login

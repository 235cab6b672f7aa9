# cvlens/errors.py
from __future__ import annotations


class AnalysisError(Exception):
    """Base for failures surfaced to the caller as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputValidationError(AnalysisError):
    status_code = 400


class RecordNotFoundError(AnalysisError):
    status_code = 404


class StorageError(AnalysisError):
    status_code = 502


class UpstreamAIError(AnalysisError):
    status_code = 502

    def __init__(self, message: str, *, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class PersistenceError(AnalysisError):
    status_code = 500


class UploadRejected(AnalysisError):
    status_code = 400

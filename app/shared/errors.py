"""Application errors with a stable code/status contract for API clients."""
from typing import Any, Optional


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.details = details


class CatalogLoadError(AppError):
    """The static survey catalog could not be fetched or was not a catalog."""
    code = "catalog_load_failed"
    status_code = 502


class SurveyNotAllowedError(AppError):
    """Starting or completing the survey is not allowed (retake or daily limit)."""
    code = "survey_not_allowed"
    status_code = 403

    def __init__(self, message: str, *, reason: str = "daily_limit", limit: int = 0, dialog: Optional[dict] = None):
        super().__init__(message, details={"reason": reason, "limit": limit, "dialog": dialog})
        self.reason = reason
        self.limit = limit
        self.dialog = dialog


class PremiumRequiredError(AppError):
    code = "premium_required"
    status_code = 402


class StorageConflictError(AppError):
    """A compare-and-set update kept losing to concurrent writers."""
    code = "storage_conflict"
    status_code = 409


class NotFoundError(AppError):
    code = "not_found"
    status_code = 404

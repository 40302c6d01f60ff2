"""
Typed admission and moderation failures.

Every check in the guard layer reports a refusal by raising one of these.
Routes never turn them into silent approvals: the app factory registers a
handler that maps each to a JSON body and HTTP status.
"""

from __future__ import annotations
from typing import Any, Dict, Optional


class AdmissionError(Exception):
    """Base class for refusals raised by the guard layer."""

    status_code = 400
    error = "rejected"
    retryable = False

    def __init__(self, message: str = "", retry_after: Optional[float] = None):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            payload["retry_after"] = max(0, int(round(self.retry_after)))
        return payload


class RateLimitExceeded(AdmissionError):
    status_code = 429
    error = "rate_limited"
    retryable = True

    def __init__(self, limiter: str, retry_after: Optional[float] = None):
        super().__init__(f"Too many requests ({limiter}). Please slow down.", retry_after)
        self.limiter = limiter

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["remaining"] = 0
        return payload


class Banned(AdmissionError):
    """Carries the ban reason and remaining seconds, or None when permanent."""

    status_code = 403
    error = "banned"

    def __init__(self, nickname: str, reason: str, remaining: Optional[float]):
        super().__init__(f"{nickname} is banned: {reason}")
        self.nickname = nickname
        self.reason = reason
        self.remaining = remaining

    @property
    def permanent(self) -> bool:
        return self.remaining is None

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["reason"] = self.reason
        payload["remaining"] = "permanent" if self.permanent else max(0, int(self.remaining))
        return payload


class ProfanityDetected(AdmissionError):
    error = "profanity"

    def __init__(self, word: Optional[str] = None):
        super().__init__("Content contains disallowed language.")
        # Kept for logs only; never echoed back to the client.
        self.word = word


class QuotaExceeded(AdmissionError):
    status_code = 429
    error = "quota_exceeded"
    retryable = True

    def __init__(self, retry_after: Optional[float] = None):
        super().__init__("Daily API quota exhausted.", retry_after)


class InvalidCredential(AdmissionError):
    status_code = 401
    error = "invalid_credential"

    def __init__(self, message: str = "Unknown or revoked API key."):
        super().__init__(message)


class PersistenceUnavailable(AdmissionError):
    """The store could not be reached. The guard never retries on its own."""

    status_code = 503
    error = "unavailable"

    def __init__(self, message: str = "Storage is temporarily unavailable."):
        super().__init__(message)

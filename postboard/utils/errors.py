"""
Error sanitization and JSON error handlers.

Unexpected exceptions are logged in full and answered with a short generic
message so internals never leak to clients. Guard refusals (AdmissionError)
carry their own safe payload and status.
"""

from __future__ import annotations
from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException

from postboard.services.errors import AdmissionError

GENERIC_MESSAGES = {
    "database": "Something went wrong saving or loading data. Please try again.",
    "validation": "The request was invalid.",
    "unknown": "An unexpected error occurred.",
}


def sanitize_error(error: Exception, category: str = "unknown", context: str = "") -> str:
    """Log the real error and return a message safe to show the client."""
    prefix = f"{context}: " if context else ""
    current_app.logger.error(f"{prefix}{type(error).__name__}: {error}")
    return GENERIC_MESSAGES.get(category, GENERIC_MESSAGES["unknown"])


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AdmissionError)
    def handle_admission_error(err: AdmissionError):
        resp = jsonify(err.to_dict())
        if err.retry_after is not None:
            resp.headers["Retry-After"] = str(max(0, int(round(err.retry_after))))
        return resp, err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err: HTTPException):
        return jsonify({"success": False, "error": err.name.lower().replace(" ", "_")}), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        sanitized_msg = sanitize_error(err, "unknown", "Unhandled error")
        return jsonify({"success": False, "error": "internal_error", "message": sanitized_msg}), 500

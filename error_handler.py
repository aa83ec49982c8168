# error_handler.py
import logging
from datetime import datetime, timezone

from flask import jsonify
from werkzeug.exceptions import HTTPException

import settings

log = logging.getLogger(__name__)


class SecurityError(Exception):
    """Base error carrying an HTTP status, a machine code and optional details."""

    def __init__(self, message: str, status_code: int = 400, code: str | None = None, details=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code or "SECURITY_ERROR"
        self.details = details


class ValidationError(SecurityError):
    def __init__(self, message: str, details=None):
        super().__init__(message, 400, "VALIDATION_ERROR", details)


class AuthenticationError(SecurityError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, 401, "AUTHENTICATION_ERROR")


class AuthorizationError(SecurityError):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, 403, "AUTHORIZATION_ERROR")


class RateLimitError(SecurityError):
    def __init__(self, message: str = "Rate limit exceeded", retry_after: int | None = None):
        super().__init__(message, 429, "RATE_LIMIT_ERROR", {"retryAfter": retry_after})
        self.retry_after = retry_after


class FileUploadError(SecurityError):
    def __init__(self, message: str, details=None):
        super().__init__(message, 400, "FILE_UPLOAD_ERROR", details)


class ResponseParseError(Exception):
    """Raised when no recovery strategy could turn LLM output into files."""


def create_safe_error_response(error: BaseException, debug: bool = False) -> dict:
    """Map an exception to a response body that does not leak internals."""
    response = {"statusCode": 500, "message": "Internal server error", "code": "INTERNAL_ERROR"}

    if isinstance(error, SecurityError):
        response = {
            "statusCode": error.status_code,
            "message": error.message,
            "code": error.code,
        }
        if error.details is not None:
            response["details"] = error.details
        return response

    text = str(error)
    if "duplicate key" in text:
        response = {"statusCode": 409, "message": "Resource already exists", "code": "DUPLICATE_RESOURCE"}
    elif "not found" in text:
        response = {"statusCode": 404, "message": "Resource not found", "code": "NOT_FOUND"}
    elif "permission denied" in text:
        response = {"statusCode": 403, "message": "Permission denied", "code": "PERMISSION_DENIED"}
    elif debug:
        response["details"] = {"name": type(error).__name__, "message": text}
    return response


def register_error_handlers(app) -> None:
    @app.errorhandler(SecurityError)
    def _security_error(e: SecurityError):
        body = create_safe_error_response(e)
        if e.status_code >= 500:
            log.error("API error %s: %s", e.code, e.message)
        else:
            log.info("Rejected request %s: %s", e.code, e.message)
        resp = jsonify({"ok": False, "error": body["message"], "code": body["code"],
                        "details": body.get("details")})
        resp.status_code = body["statusCode"]
        if isinstance(e, RateLimitError) and e.retry_after:
            resp.headers["Retry-After"] = str(e.retry_after)
        return resp

    @app.errorhandler(405)
    def _method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        # let werkzeug's own HTTP errors (404 etc.) render normally
        if isinstance(e, HTTPException):
            return e
        log.exception("API error at %s", datetime.now(timezone.utc).isoformat())
        body = create_safe_error_response(e, debug=settings.DEBUG)
        return jsonify({"ok": False, "error": body["message"], "code": body["code"],
                        "details": body.get("details")}), body["statusCode"]

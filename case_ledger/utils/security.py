"""
Security utilities and middleware for the Case Ledger.

Identity is established upstream; the API only receives the acting principal
in the X-User-Id header. This module extracts and checks that principal, adds
security headers and records security events.
"""

from functools import wraps
from typing import Any, Dict

from flask import current_app, g, has_request_context, jsonify, request

from case_ledger.utils import logging_config
from case_ledger.utils.validators import ValidationError, validator

PRINCIPAL_HEADER = "X-User-Id"


class SecurityMiddleware:
    """Security middleware for Flask application"""

    def __init__(self, app=None):
        self.app = app
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize security middleware with Flask app"""
        app.before_request(self.before_request)
        app.after_request(self.after_request)

    def before_request(self):
        if not self.check_request_size():
            log_security_event("request_too_large", {"content_length": request.content_length})
            return (
                jsonify({"success": False, "error": "Request too large", "message": "Request payload is too large."}),
                413,
            )
        return None

    def after_request(self, response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        return response

    def check_request_size(self) -> bool:
        max_size = current_app.config.get("MAX_CONTENT_LENGTH", 16 * 1024 * 1024)
        content_length = request.content_length or 0
        return content_length <= max_size


def require_principal(func):
    """Decorator that requires the acting principal and exposes it as g.principal_id"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        principal = request.headers.get(PRINCIPAL_HEADER, "").strip()

        if not principal:
            log_security_event("missing_principal", {"endpoint": request.path})
            return (
                jsonify(
                    {
                        "success": False,
                        "error": "Authentication required",
                        "details": {"message": f"Missing {PRINCIPAL_HEADER} header", "code": "UNAUTHENTICATED"},
                    }
                ),
                401,
            )

        try:
            g.principal_id = validator.validate_record_id(principal, "user_id")
        except ValidationError as e:
            log_security_event("invalid_principal", {"endpoint": request.path, "error": e.message})
            return (
                jsonify(
                    {
                        "success": False,
                        "error": "Authentication required",
                        "details": {"message": e.message, "code": "UNAUTHENTICATED"},
                    }
                ),
                401,
            )

        return func(*args, **kwargs)

    return wrapper


def secure_headers(func):
    """Decorator to add security headers to response"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        response = func(*args, **kwargs)

        # Views may return (response, status) tuples
        target = response[0] if isinstance(response, tuple) else response
        if hasattr(target, "headers"):
            target.headers["X-Content-Type-Options"] = "nosniff"
            target.headers["X-Frame-Options"] = "DENY"

        return response

    return wrapper


def log_security_event(event_type: str, details: Dict[str, Any]):
    """Log security events with the caller's address and agent"""
    details = dict(details)
    if has_request_context():
        details.setdefault("ip", request.remote_addr or "unknown")
        details.setdefault("user_agent", request.headers.get("User-Agent", ""))
    logging_config.log_security_event(event_type, details)

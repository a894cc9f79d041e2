"""
Error handlers for the Case Ledger API.

Ledger exceptions raised anywhere below a view are turned into JSON responses
here, so the views only deal with the success path.
"""

from flask import jsonify
from werkzeug.exceptions import HTTPException

from case_ledger.models.errors import LedgerError, OwnershipViolation, PersistenceUnavailable, RecordNotFound
from case_ledger.utils.logging_config import get_logger
from case_ledger.utils.security import log_security_event
from case_ledger.utils.validators import ValidationError


def error_response(status: int, error: str, details=None):
    return jsonify({"success": False, "error": error, "details": details or {}}), status


def register_error_handlers(app):
    """Register error handlers with the Flask app"""
    logger = get_logger("api.errors")

    @app.errorhandler(ValidationError)
    def validation_error(e):
        log_security_event("validation_error", {"error": e.message, "field": e.field})
        return error_response(400, "Invalid input", e.to_dict())

    @app.errorhandler(RecordNotFound)
    def record_not_found(e):
        logger.info("Record not found", extra={"event": "record_not_found", **e.details})
        return error_response(404, "Not found", e.to_dict())

    @app.errorhandler(OwnershipViolation)
    def ownership_violation(e):
        log_security_event("ownership_violation", e.details)
        return error_response(403, "Forbidden", {"message": e.message, "code": e.code})

    @app.errorhandler(PersistenceUnavailable)
    def persistence_unavailable(e):
        logger.error(
            "Persistence unavailable",
            extra={"event": "persistence_unavailable", "error": e.message, **e.details},
        )
        return error_response(503, "Storage unavailable", e.to_dict())

    @app.errorhandler(LedgerError)
    def ledger_error(e):
        logger.error("Ledger error", extra={"event": "ledger_error", "error": e.message, "code": e.code})
        return error_response(500, "Internal server error", {"message": e.message, "code": e.code})

    @app.errorhandler(HTTPException)
    def http_error(e):
        return error_response(e.code or 500, e.name, {"message": e.description})

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Handle unexpected exceptions"""
        logger.error(
            "Unexpected error",
            extra={"event": "unhandled_exception", "error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        return error_response(500, "Internal server error", {"message": "An unexpected error occurred"})

"""
Case Ledger Flask Application

A personal ledger of court cases and clients for legal practitioners, with
per-case procedural history.
"""

from flask import Flask

from case_ledger.config.settings import Config
from case_ledger.services.advisory import AdvisoryService
from case_ledger.services.ledger_service import CaseLedger
from case_ledger.services.repository import RecordRepository
from case_ledger.services.store import PostgresStore, create_store
from case_ledger.utils.logging_config import get_logger, setup_flask_logging

# Global ledger services
ledger = None
advisor = None


def create_app(config_class=Config):
    """Application factory pattern for creating Flask app instances"""
    app = Flask(__name__)

    # Load configuration
    try:
        config_class.validate_config()
        app.config.from_object(config_class)
        app.secret_key = config_class.SECRET_KEY
    except ValueError as e:
        # Set up basic logging first for error reporting
        setup_flask_logging(app)
        logger = get_logger("app.config")
        logger.error("Configuration validation failed", extra={"error": str(e), "config_class": config_class.__name__})
        raise

    # Set up structured logging
    setup_flask_logging(app)
    logger = get_logger("app.init")

    # Initialize the store and the ledger on top of it
    global ledger, advisor
    try:
        store = create_store(config_class)
        if isinstance(store, PostgresStore):
            store.ensure_schema()
        ledger = CaseLedger(RecordRepository(store), case_insensitive_linking=config_class.LINK_CASE_INSENSITIVE)
        logger.info(
            "Ledger store initialised",
            extra={
                "event": "store_init_success",
                "backend": store.backend,
                "case_insensitive_linking": config_class.LINK_CASE_INSENSITIVE,
            },
        )
    except Exception as e:
        logger.error(
            "Failed to initialise ledger store",
            extra={
                "event": "store_init_failed",
                "error": str(e),
                "error_type": type(e).__name__,
                "backend": getattr(config_class, "STORAGE_BACKEND", None),
            },
            exc_info=True,
        )
        raise

    advisor = AdvisoryService(
        api_key=config_class.OPENAI_API_KEY or None,
        model=config_class.ADVISORY_MODEL,
        timeout=config_class.ADVISORY_TIMEOUT,
    )
    logger.info("Advisory service configured", extra={"event": "advisory_init", "enabled": advisor.enabled})

    # Register blueprints
    from case_ledger.views.api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Security headers and request size limits
    from case_ledger.utils.security import SecurityMiddleware

    SecurityMiddleware(app)

    # Register error handlers
    from case_ledger.views.errors import register_error_handlers

    register_error_handlers(app)

    return app


def get_ledger():
    """Get the global case ledger instance"""
    return ledger


def get_advisor():
    """Get the global advisory service instance"""
    return advisor


def set_advisor(service: AdvisoryService):
    """Replace the advisory service (used to plug in another generator)"""
    global advisor
    advisor = service

"""
Basic tests for the Case Ledger application.
"""

import pytest

from case_ledger import create_app
from case_ledger.config.settings import Config, ProductionConfig, TestingConfig


def test_app_creation(app):
    """Test that the app is created successfully."""
    assert app is not None
    assert app.config["TESTING"] is True
    assert app.config["STORAGE_BACKEND"] == "file"


def test_health_endpoint(client):
    """Test the health check endpoint."""
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"success": True, "status": "healthy", "backend": "file"}


def test_correlation_id_header(client):
    response = client.get("/api/health", headers={"X-Correlation-ID": "abc123"})
    assert response.headers["X-Correlation-ID"] == "abc123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_unknown_route_is_json(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.get_json()["success"] is False


def test_unsupported_backend_rejected():
    class BadConfig(TestingConfig):
        STORAGE_BACKEND = "mongodb"

    with pytest.raises(ValueError, match="STORAGE_BACKEND"):
        create_app(BadConfig)


def test_production_requires_secret_key():
    class Prod(ProductionConfig):
        SECRET_KEY = "MUST_BE_SET_IN_PRODUCTION"

    with pytest.raises(ValueError, match="SECRET_KEY"):
        Prod.validate_config()


def test_database_config_keys():
    db = Config.get_database_config()
    assert set(db) == {"host", "port", "database", "user", "password", "min_connections", "max_connections"}

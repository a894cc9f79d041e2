"""
Configuration settings for the Case Ledger application.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

STORAGE_BACKENDS = ("file", "postgresql")


class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-key-change-in-production")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    DEBUG = os.getenv("FLASK_DEBUG", "True").lower() == "true"

    # Storage Configuration
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "file").lower()
    DATA_DIR = os.getenv("DATA_DIR", "data")

    # Database Configuration (STORAGE_BACKEND=postgresql)
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = int(os.getenv("DB_PORT", 5432))
    DB_NAME = os.getenv("DB_NAME", "case_ledger")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "postgres")
    DB_MIN_CONNECTIONS = int(os.getenv("DB_MIN_CONNECTIONS", 1))
    DB_MAX_CONNECTIONS = int(os.getenv("DB_MAX_CONNECTIONS", 5))

    # Application Settings
    APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT = int(os.getenv("APP_PORT", 5000))
    JSONIFY_PRETTYPRINT_REGULAR = True
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # photos travel as data URLs

    # Ledger behaviour
    LINK_CASE_INSENSITIVE = os.getenv("LINK_CASE_INSENSITIVE", "false").lower() == "true"
    STALE_CONTACT_DAYS = int(os.getenv("STALE_CONTACT_DAYS", 30))

    # Advisory generator (optional)
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    ADVISORY_MODEL = os.getenv("ADVISORY_MODEL", "gpt-4o-mini")
    ADVISORY_TIMEOUT = float(os.getenv("ADVISORY_TIMEOUT", 20))

    # Logging Configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "development")  # 'json' for production, 'development' for dev
    LOG_FILE = os.getenv("LOG_FILE", "logs/app.log")
    LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
    LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))
    LOG_ENABLE_CONSOLE = os.getenv("LOG_ENABLE_CONSOLE", "true").lower() == "true"

    @classmethod
    def get_database_config(cls):
        """Get database configuration as dictionary"""
        return {
            "host": cls.DB_HOST,
            "port": cls.DB_PORT,
            "database": cls.DB_NAME,
            "user": cls.DB_USER,
            "password": cls.DB_PASSWORD,
            "min_connections": cls.DB_MIN_CONNECTIONS,
            "max_connections": cls.DB_MAX_CONNECTIONS,
        }

    @classmethod
    def validate_config(cls):
        """Validate required configuration"""
        if cls.STORAGE_BACKEND not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unsupported STORAGE_BACKEND '{cls.STORAGE_BACKEND}', expected one of: {', '.join(STORAGE_BACKENDS)}"
            )

        if cls.STORAGE_BACKEND == "postgresql":
            required_vars = ["DB_HOST", "DB_NAME", "DB_USER", "DB_PASSWORD"]
        else:
            required_vars = ["DATA_DIR"]
        missing_vars = []

        for var in required_vars:
            if not getattr(cls, var):
                missing_vars.append(var)

        if missing_vars:
            raise ValueError(f"Missing required configuration variables: {', '.join(missing_vars)}")

        return True


class DevelopmentConfig(Config):
    """Development configuration"""

    DEBUG = True
    FLASK_ENV = "development"


class ProductionConfig(Config):
    """Production configuration"""

    DEBUG = False
    FLASK_ENV = "production"

    SECRET_KEY = os.getenv("SECRET_KEY") or "MUST_BE_SET_IN_PRODUCTION"

    # Production logging defaults
    LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
    LOG_ENABLE_CONSOLE = os.getenv("LOG_ENABLE_CONSOLE", "false").lower() == "true"

    @classmethod
    def validate_config(cls):
        """Additional validation for production"""
        super().validate_config()

        secret_key = getattr(cls, "SECRET_KEY", "")
        if not secret_key or secret_key in ("dev-key-change-in-production", "MUST_BE_SET_IN_PRODUCTION"):
            raise ValueError("SECRET_KEY must be set to a secure value in production")


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = True
    STORAGE_BACKEND = "file"
    DATA_DIR = os.getenv("TEST_DATA_DIR", "data-test")
    DB_NAME = os.getenv("TEST_DB_NAME", "case_ledger_test")
    OPENAI_API_KEY = ""
    LOG_FILE = ""
    LOG_ENABLE_CONSOLE = False


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}

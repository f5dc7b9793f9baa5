import os
from datetime import timedelta
import logging
from logging.handlers import RotatingFileHandler
import sys

from google.cloud import secretmanager


def setup_logging(app_env):
    """Configure logging based on environment"""
    log_level = logging.DEBUG if app_env == "development" else logging.INFO

    # Provisioning events carry the tenant they were applied to
    class TenantFormatter(logging.Formatter):
        def format(self, record):
            if not hasattr(record, "tenant_id"):
                record.tenant_id = "NO_TENANT"
            return super().format(record)

    log_format = TenantFormatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(tenant_id)s] - %(message)s"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to prevent duplicates
    root_logger.handlers = []
    root_logger.addHandler(console_handler)

    log_file = os.getenv("LOG_FILE")
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        file_handler = RotatingFileHandler(log_file, maxBytes=10 * 1024 * 1024, backupCount=5)
        file_handler.setFormatter(log_format)
        root_logger.addHandler(file_handler)

    return root_logger


logger = setup_logging(os.getenv("FLASK_ENV", "development"))


def get_secret(secret_id, default_value):
    """Get secret from Secret Manager or return default value"""
    project = os.getenv("GCP_PROJECT")
    if not project:
        return default_value

    try:
        client = secretmanager.SecretManagerServiceClient()
        name = f"projects/{project}/secrets/{secret_id}/versions/latest"
        response = client.access_secret_version(request={"name": name})
        return response.payload.data.decode("UTF-8")
    except Exception as e:
        logger.warning(f"Could not load secret {secret_id}: {e}")
        return default_value


def get_db_url(db_name):
    """Get database URL with connection parameters"""
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "postgres")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")

    ssl_mode = "?sslmode=verify-full" if os.getenv("FLASK_ENV") == "production" else ""

    return f"postgresql://{user}:{password}@{host}:{port}/{db_name}{ssl_mode}"


class BaseConfig:
    """Base configuration with shared settings"""

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = True

    # CORS settings
    CORS_SUPPORTS_CREDENTIALS = True

    # JWT settings
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=15)

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STRATEGY = "fixed-window"
    RATELIMIT_STORAGE_URI = "memory://"

    # Caching
    CACHE_TYPE = "SimpleCache"
    CACHE_DEFAULT_TIMEOUT = 300

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "max_overflow": 20,
    }

    # Provisioning
    ADMIN_ROLE_KEY = "tenant_admin"
    OPERATIONAL_ROLE_KEY = "staff"
    ENTITLEMENT_CACHE_TIMEOUT = 300
    PLAN_ASSIGNMENT_RATE_LIMIT = "30 per minute"

    SECRET_KEY = get_secret("licensing-flask-secret-key", os.getenv("SECRET_KEY", "dev-secret-key"))
    JWT_SECRET_KEY = get_secret(
        "licensing-jwt-secret-key", os.getenv("JWT_SECRET_KEY", "dev-jwt-secret-key")
    )


class DevelopmentConfig(BaseConfig):
    """Development configuration"""

    DEBUG = True
    DEVELOPMENT = True

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", get_db_url("licensing_dev"))
    SQLALCHEMY_ECHO = False

    CORS_ORIGINS = ["http://localhost:3000"]

    REDIS_URL = "redis://localhost:6379"

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


class ProductionConfig(BaseConfig):
    """Production configuration"""

    DEBUG = False
    TESTING = False

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")
    SQLALCHEMY_ECHO = False

    RATELIMIT_STORAGE_URI = os.getenv("REDIS_URL", "memory://")
    RATELIMIT_HEADERS_ENABLED = True

    CORS_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",")

    CACHE_TYPE = "RedisCache"
    CACHE_REDIS_URL = os.getenv("REDIS_URL")

    SENTRY_DSN = get_secret("sentry-dsn", os.getenv("SENTRY_DSN"))

    PREFERRED_URL_SCHEME = "https"

    REDIS_URL = os.getenv("REDIS_URL")


class TestingConfig(BaseConfig):
    """Testing configuration"""

    TESTING = True
    DEBUG = False

    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SQLALCHEMY_ECHO = False

    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)

    RATELIMIT_ENABLED = False

    CACHE_TYPE = "NullCache"

    REDIS_URL = "redis://localhost:6379"


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


def get_config():
    """Get configuration based on environment"""
    env = os.getenv("FLASK_ENV", "development")
    return config_by_name[env]

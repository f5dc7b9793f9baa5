# licensing/__init__.py
import logging

from flask import Flask, jsonify, request

from .config import config_by_name, get_config
from .extensions import db, init_extensions
from .core.database import enable_sqlite_savepoints
from .core.errors import register_error_handlers
from .core.monitoring import init_sentry
from .api.catalog.routes import catalog_bp
from .api.tenant_access.routes import tenant_access_bp
from .api.plans.routes import plans_bp
from .api.health.routes import health_bp

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    app = Flask(__name__)

    # Load config; FLASK_ENV decides when no name is given
    app.config.from_object(config_by_name[config_name] if config_name else get_config())

    # Initialize extensions
    init_extensions(app)
    init_sentry(app)

    if (app.config.get("SQLALCHEMY_DATABASE_URI") or "").startswith("sqlite"):
        with app.app_context():
            enable_sqlite_savepoints(db.engine)

    register_error_handlers(app)

    # Root endpoint
    @app.route("/")
    def root():
        return jsonify(
            {"service": "License-to-Access Provisioning API", "version": "1.0.0", "status": "running"}
        )

    # Request logging
    @app.before_request
    def log_request_info():
        logger.info(f"Request: {request.method} {request.path}")
        if request.is_json:
            logger.debug(f"Request Body: {request.get_json(silent=True)}")

    # Register blueprints
    app.register_blueprint(catalog_bp, url_prefix="/api/catalog")
    app.register_blueprint(tenant_access_bp, url_prefix="/api/tenants")
    app.register_blueprint(plans_bp, url_prefix="/api/tenants")
    app.register_blueprint(health_bp, url_prefix="/api")

    # Log registered routes
    logger.debug("Registered routes:")
    for rule in app.url_map.iter_rules():
        logger.debug(f"{rule.endpoint}: {rule.methods} {rule.rule}")

    return app

# licensing/extensions.py
from flask import jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address


def tenant_rate_limit_key():
    """Plan assignment is limited per tenant; anything else per client address"""
    tenant_id = (request.view_args or {}).get("tenant_id")
    if tenant_id:
        return f"tenant:{tenant_id}"
    return get_remote_address()


db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
cors = CORS()
# Holds resolved plan entitlement sets
cache = Cache()
limiter = Limiter(key_func=tenant_rate_limit_key)


def _auth_error(error_type, message):
    return jsonify({"error": error_type, "message": message}), 401


@jwt.unauthorized_loader
def missing_token(reason):
    return _auth_error("AuthenticationError", reason)


@jwt.invalid_token_loader
def invalid_token(reason):
    return _auth_error("AuthenticationError", reason)


@jwt.expired_token_loader
def expired_token(jwt_header, jwt_payload):
    return _auth_error("TokenExpired", "Token has expired")


def init_extensions(app):
    """Initialize all Flask extensions"""
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    # Browser consoles only talk to the JSON API
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", [])}},
        supports_credentials=app.config.get("CORS_SUPPORTS_CREDENTIALS", False),
    )
    cache.init_app(app)
    limiter.init_app(app)

    return app

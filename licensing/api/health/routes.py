# licensing/api/health/routes.py
import time

from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import jwt_required
from redis import Redis
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from licensing.core.metrics import get_current_metrics, track_performance
from licensing.core.monitoring import capture_error
from licensing.extensions import db

health_bp = Blueprint("health", __name__)


def check_database():
    """Check database connection"""
    try:
        db.session.execute(text("SELECT 1"))
        return True, "Healthy"
    except SQLAlchemyError as e:
        return False, str(e)


def check_redis():
    """Check Redis connection"""
    try:
        redis_url = current_app.config.get("REDIS_URL", "redis://localhost:6379")
        redis_client = Redis.from_url(redis_url, socket_connect_timeout=1)
        redis_client.ping()
        return True, "Healthy"
    except RedisError as e:
        return False, str(e)


@health_bp.route("/health")
@track_performance
@capture_error
def health_check():
    """Basic health check endpoint"""
    start_time = time.time()

    db_healthy, db_message = check_database()
    redis_healthy, redis_message = check_redis()

    response_time = time.time() - start_time
    status = "healthy" if all([db_healthy, redis_healthy]) else "unhealthy"

    health_status = {
        "status": status,
        "response_time": f"{response_time:.3f}s",
        "services": {
            "database": {"status": "healthy" if db_healthy else "unhealthy", "message": db_message},
            "redis": {"status": "healthy" if redis_healthy else "unhealthy", "message": redis_message},
        },
        "version": current_app.config.get("VERSION", "1.0.0"),
    }

    status_code = 200 if status == "healthy" else 503
    return jsonify(health_status), status_code


@health_bp.route("/metrics")
@jwt_required()
def get_metrics():
    """Provisioning counters and endpoint timings"""
    return jsonify(get_current_metrics())

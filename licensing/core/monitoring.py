# licensing/core/monitoring.py
from functools import wraps

from flask import g
from marshmallow import ValidationError as SchemaValidationError
import sentry_sdk
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration


def should_capture_error(exception):
    """Don't send client errors (4xx) to Sentry"""
    if isinstance(exception, SchemaValidationError):
        return False
    status_code = getattr(exception, "status_code", None)
    if status_code is not None and status_code < 500:
        return False
    return True


def init_sentry(app):
    """Initialize Sentry when a DSN is configured"""
    if not app.config.get("SENTRY_DSN"):
        app.logger.info("SENTRY_DSN not configured, skipping Sentry initialization")
        return

    def before_send(event, hint):
        exc_info = hint.get("exc_info")
        if exc_info and not should_capture_error(exc_info[1]):
            return None
        return event

    sentry_sdk.init(
        dsn=app.config["SENTRY_DSN"],
        integrations=[FlaskIntegration(), SqlalchemyIntegration()],
        environment=app.config.get("ENV_NAME", "production"),
        traces_sample_rate=app.config.get("SENTRY_TRACES_SAMPLE_RATE", 0.1),
        before_send=before_send,
    )


def capture_provisioning_failure(exception, tenant_id, capability_id, operation):
    """Report a per-capability failure that was caught so the batch could continue"""
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("tenant_id", tenant_id)
        scope.set_tag("capability_id", capability_id)
        scope.set_tag("provisioning_operation", operation)
        sentry_sdk.capture_exception(exception)


def capture_error(func):
    """Report server errors raised by a view, tagged with the tenant and actor"""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if should_capture_error(e):
                with sentry_sdk.new_scope() as scope:
                    if kwargs.get("tenant_id"):
                        scope.set_tag("tenant_id", kwargs["tenant_id"])
                    if g.get("actor_id"):
                        scope.set_user({"id": g.actor_id})
                    sentry_sdk.capture_exception(e)
            raise

    return wrapper

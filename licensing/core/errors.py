# licensing/core/errors.py
import logging

from flask import jsonify, request
from marshmallow import ValidationError as SchemaValidationError
from werkzeug.exceptions import HTTPException

from .exceptions import BaseAPIException

logger = logging.getLogger(__name__)


def handle_api_exception(error):
    """Render any BaseAPIException as JSON"""
    if error.status_code >= 500:
        logger.error(f"{error.__class__.__name__}: {error.message}")
    else:
        logger.info(f"{error.__class__.__name__}: {error.message}")

    response = jsonify(error.to_dict())
    response.status_code = error.status_code
    return response


def handle_schema_error(error):
    """Handle marshmallow payload validation errors"""
    response = jsonify({"error": "ValidationError", "message": "Invalid payload", "errors": error.messages})
    response.status_code = 400
    return response


def handle_not_found(error):
    logger.error(f"404 Error: {request.url}")
    return (
        jsonify({"error": "Not Found", "message": f"The requested URL {request.path} was not found"}),
        404,
    )


def handle_unexpected(error):
    if isinstance(error, HTTPException):
        return error
    logger.error(f"Unhandled Exception: {str(error)}", exc_info=True)
    return jsonify({"error": str(error.__class__.__name__), "message": str(error)}), 500


def register_error_handlers(app):
    """Register error handlers with the Flask app"""
    app.register_error_handler(BaseAPIException, handle_api_exception)
    app.register_error_handler(SchemaValidationError, handle_schema_error)
    app.register_error_handler(404, handle_not_found)
    app.register_error_handler(Exception, handle_unexpected)

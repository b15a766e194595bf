# /clonepoints/errors.py
# Domain errors and their mapping to JSON responses.

import logging
from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = 400
    message = "Request failed"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class InvalidCredentials(ServiceError):
    status_code = 401
    message = "Invalid credentials"


class AccountLocked(ServiceError):
    status_code = 401
    message = "Account is locked"


class SecondFactorRequired(ServiceError):
    status_code = 401
    message = "2FA code required"


class InvalidSecondFactor(ServiceError):
    status_code = 401
    message = "Invalid 2FA code"


class AlreadyExists(ServiceError):
    status_code = 400
    message = "Already exists"


class NotFound(ServiceError):
    status_code = 404
    message = "Not found"


class ValidationError(ServiceError):
    status_code = 400
    message = "Invalid input"


class StorageError(ServiceError):
    status_code = 503
    message = "Storage unavailable"


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(err):
        return jsonify(message=err.message), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        return jsonify(message=err.description), err.code

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        logger.exception("Unhandled error on request")
        if app.config.get("APP_ENV") == "production":
            return jsonify(message="Internal Server Error"), 500
        return jsonify(message=str(err) or "Internal Server Error"), 500

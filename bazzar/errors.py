"""
Error types and their JSON rendering
"""
import logging
import time
from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError

from .db import db
from .limiter import limiter

logger = logging.getLogger(__name__)


class BazzarError(Exception):
    """Base error carrying the HTTP status it maps to"""
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(BazzarError):
    status_code = 400


class NotFoundError(BazzarError):
    status_code = 404


class AuthError(BazzarError):
    status_code = 401


class ForbiddenError(BazzarError):
    status_code = 403


class ServiceUnavailable(BazzarError):
    status_code = 503


def register_error_handlers(app):
    """Renders domain and persistence errors as {"error": ...} responses"""

    @app.errorhandler(BazzarError)
    def handle_bazzar_error(error):
        db.session.rollback()
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_persistence_error(error):
        db.session.rollback()
        logger.exception("Persistence failure: %s", error)
        return jsonify({"error": "Database error, operation not applied"}), 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(429)
    def handle_rate_limited(error):
        current = limiter.current_limit
        retry_after = max(1, int(current.reset_at - time.time())) if current else 1
        logger.warning("Rate limit exceeded: %s", error.description)
        response = jsonify({
            "error": "Too Many Requests",
            "message": f"Rate limit exceeded. Try again in {retry_after} seconds.",
            "retryAfter": retry_after,
        })
        response.status_code = 429
        response.headers["Retry-After"] = str(retry_after)
        return response

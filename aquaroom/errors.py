# --- aquaroom/errors.py ---
from flask import jsonify
from werkzeug.exceptions import HTTPException

from .extensions import db
from .utils.api import api_error
from .utils.logger import get_logger

logger = get_logger("errors")


class ApiError(Exception):
    status_code = 400

    def __init__(self, message: str, field: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.field = field
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400


class ShippingConfigError(ValidationError):
    """Shipping fee requested from a product without the needed tier values."""
    status_code = 422


class AuthError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class StorageError(ApiError):
    status_code = 502


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e: ApiError):
        if e.status_code >= 500:
            logger.error("%s: %s", type(e).__name__, e.message)
        extra = {"field": e.field} if e.field else None
        r = jsonify(api_error(e.message, extra))
        r.status_code = e.status_code
        return r

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        r = jsonify(api_error(e.description or e.name))
        r.status_code = e.code or 500
        return r

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        db.session.rollback()
        logger.exception("Unhandled error: %s", e)
        r = jsonify(api_error("เกิดข้อผิดพลาดภายในระบบ"))
        r.status_code = 500
        return r

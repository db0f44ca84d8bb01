# insta_api/core/errors.py
import logging

from flask import Flask
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from insta_api.core.responses import failure


class ApiError(Exception):
    """Base class for errors that map onto a status code of the error envelope."""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(ApiError):
    status_code = 400


class UnauthorizedError(ApiError):
    status_code = 401


class ForbiddenError(ApiError):
    status_code = 403


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class UpstreamError(ApiError):
    """The object store rejected or failed a request."""
    status_code = 502


def register_error_handlers(app: Flask):
    """Routes every failure through the {isError, statusCode, message} envelope."""

    @app.errorhandler(ApiError)
    def handle_api_error(err: ApiError):
        if err.status_code >= 500:
            logging.error(f"API error ({err.status_code}): {err.message}", exc_info=True)
        return failure(err.message, err.status_code)

    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err: ValidationError):
        return failure(_flatten_messages(err.messages), 400)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return failure(err.description, err.code)

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        # Anything not handled above ends up here.
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        return failure(str(err) or "Internal server error", 500)


def _flatten_messages(messages) -> str:
    if isinstance(messages, dict):
        parts = []
        for field_name, value in messages.items():
            parts.append(f"{field_name}: {_flatten_messages(value)}")
        return "; ".join(parts)
    if isinstance(messages, list):
        return ", ".join(_flatten_messages(m) for m in messages)
    return str(messages)

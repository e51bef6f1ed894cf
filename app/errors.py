"""
Domain errors and their JSON rendering.

Every error raised by the services carries an HTTP-style ``code``, an
``error`` name and a message key. The handler registered by
``register_error_handlers`` translates the key into the caller's language
and answers ``{"code", "error", "message"}``.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, Response, current_app, g, jsonify

from app.i18n import translate

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for errors surfaced to API clients."""

    code = 500
    error = "InternalServerError"

    def __init__(self, message_key: str, variables: dict[str, Any] | None = None) -> None:
        super().__init__(message_key)
        self.message_key = message_key
        self.variables = variables or {}

    def render(self, language: str | None = None) -> dict[str, Any]:
        return {
            "code": self.code,
            "error": self.error,
            "message": translate(self.message_key, self.variables, language),
        }


class BadRequest(APIError):
    code = 400
    error = "BadRequest"


class NotAuthorized(APIError):
    code = 401
    error = "NotAuthorized"


class NotFound(APIError):
    code = 404
    error = "NotFound"


class Conflict(APIError):
    code = 409
    error = "Conflict"


def _request_language() -> str:
    user = g.get("user")
    if user is not None:
        return user.language
    return current_app.config.get("DEFAULT_LANGUAGE", "en")


def register_error_handlers(app: Flask) -> None:
    """Attach JSON error handlers for domain errors and common HTTP errors."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError) -> tuple[Response, int]:
        logger.info("%s (%s): %s", error.error, error.code, error.message_key)
        return jsonify(error.render(_request_language())), error.code

    @app.errorhandler(404)
    def not_found(error: Exception) -> tuple[Response, int]:
        """Handle 404 Not Found errors."""
        return jsonify(NotFound("resourceNotFound").render(_request_language())), 404

    @app.errorhandler(500)
    def internal_error(error: Exception) -> tuple[Response, int]:
        """Handle 500 Internal Server errors."""
        logger.error("Internal server error: %s", error)
        return jsonify(APIError("internalError").render(_request_language())), 500

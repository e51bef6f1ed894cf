"""
JWT verification helpers for the group task service.

The service never issues tokens; it verifies RS256 tokens signed by the
identity provider with the configured ``JWT_PUBLIC_KEY``. The
``require_auth`` decorator resolves the acting user for a request and
stores it on ``flask.g``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

import jwt
from flask import current_app, g, request
from sqlalchemy.exc import IntegrityError

from app import db
from app.errors import NotAuthorized
from app.models import User

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_ALGORITHMS = ["RS256"]
REQUIRED_TOKEN_CLAIMS = ["user_id", "username", "iat", "exp"]


def verify_token(
    token: str,
    public_key: str,
    algorithms: list[str] | None = None,
) -> dict[str, Any] | None:
    """
    Decode and validate a JWT, returning the payload on success.

    Performs full verification: signature check, expiry (``exp``), issued-at
    (``iat``), and presence of all required claims. Additionally validates
    that ``user_id`` is a positive integer and ``username`` is a non-empty
    string.

    Args:
        token: The encoded JWT string to verify.
        public_key: The RSA public key in PEM format.
        algorithms: Acceptable signing algorithms, ``["RS256"]`` by default.

    Returns:
        The decoded payload dictionary, or ``None`` if verification fails.
    """
    try:
        decoded = jwt.decode(
            token,
            public_key,
            algorithms=algorithms or DEFAULT_ALLOWED_ALGORITHMS,
            options={"require": REQUIRED_TOKEN_CLAIMS},
            leeway=int(current_app.config.get("JWT_CLOCK_SKEW_SECONDS", 30)),
        )
    except jwt.InvalidTokenError:
        return None

    user_id = decoded.get("user_id")
    username = decoded.get("username")

    if not isinstance(user_id, int) or user_id <= 0:
        return None
    if not isinstance(username, str) or not username.strip():
        return None
    return decoded


def _find_user(user_id: int) -> User | None:
    return db.session.get(User, user_id)


def load_user(payload: dict[str, Any]) -> User:
    """Upsert the local user row for a verified token payload."""
    user = _find_user(payload["user_id"])
    if user is None:
        user = User(
            id=payload["user_id"],
            username=payload["username"],
            language=current_app.config.get("DEFAULT_LANGUAGE", "en"),
        )
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            # Another request registered the same identity first.
            db.session.rollback()
            user = _find_user(payload["user_id"])
        else:
            logger.info("Registered user %s (%s)", user.id, user.username)
    if user.username != payload["username"]:
        user.username = payload["username"]
        db.session.commit()
    return user


def require_auth(view_func: Callable[..., Any]):
    """
    Decorator that enforces Bearer-token authentication on API endpoints.

    Extracts the ``Authorization: Bearer <token>`` header, verifies the JWT
    and stores the acting ``User`` on ``g.user``. Failures raise
    ``NotAuthorized`` before the wrapped view runs.
    """

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            raise NotAuthorized("missingAuthHeader")

        token = auth_header[7:].strip()
        if not token:
            raise NotAuthorized("missingAuthHeader")

        payload = verify_token(
            token,
            current_app.config["JWT_PUBLIC_KEY"],
            algorithms=DEFAULT_ALLOWED_ALGORITHMS,
        )
        if payload is None:
            raise NotAuthorized("invalidToken")

        g.user = load_user(payload)
        return view_func(*args, **kwargs)

    return wrapper

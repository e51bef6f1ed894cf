"""
Endpoints for the authenticated user.

Endpoints:
    GET  /api/user                 - Profile plus pending notifications
    PUT  /api/user                 - Update preferences (language)
    POST /api/notifications/read   - Clear pending notifications
"""

import logging

from flask import Blueprint, Response, g, jsonify

from app import db
from app.auth import require_auth
from app.errors import BadRequest
from app.i18n import available_languages
from app.routes import json_body
from app.services import notifications

logger = logging.getLogger(__name__)

user_bp = Blueprint("user", __name__)


@user_bp.route("/user", methods=["GET"])
@require_auth
def get_user() -> tuple[Response, int]:
    """Return the caller with their pending notifications, oldest first."""
    return jsonify(g.user.to_dict(notifications.pending_for(g.user.id))), 200


@user_bp.route("/user", methods=["PUT"])
@require_auth
def update_user() -> tuple[Response, int]:
    """
    Update the caller's preferences.

    Request Body (JSON):
        preferences: ``{"language": "<code>"}``
    """
    preferences = json_body().get("preferences") or {}
    if not isinstance(preferences, dict):
        raise BadRequest("invalidRequestBody")
    if "language" in preferences:
        languages = available_languages()
        if preferences["language"] not in languages:
            raise BadRequest("invalidLanguage", {"choices": ", ".join(languages)})
        g.user.language = preferences["language"]
        db.session.commit()
        logger.info(f"User {g.user.id} switched language to {g.user.language}")
    return jsonify(g.user.to_dict()), 200


@user_bp.route("/notifications/read", methods=["POST"])
@require_auth
def read_notifications() -> tuple[Response, int]:
    """
    Clear the caller's pending notifications.

    Request Body (JSON, optional):
        ids: Notification ids to clear; all of them when omitted.
    """
    ids = json_body(required=False).get("ids")
    if ids is not None and (
        not isinstance(ids, list) or not all(isinstance(i, int) for i in ids)
    ):
        raise BadRequest("invalidNotificationIds")
    removed = notifications.mark_read(g.user.id, ids)
    db.session.commit()
    return jsonify({"cleared": removed}), 200

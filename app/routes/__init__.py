"""
Routes package for the group task service.

This package contains route blueprints:
- api: group task endpoints (create, assign, approve, score)
- groups: group roster endpoints
- user: the caller's profile and notifications
"""

from __future__ import annotations

from typing import Any

from flask import request

from app.errors import BadRequest


def json_body(required: bool = True) -> dict[str, Any]:
    """Return the JSON object sent with the request."""
    data = request.get_json(silent=True)
    if data is None and not required:
        return {}
    if not isinstance(data, dict):
        raise BadRequest("invalidRequestBody")
    return data

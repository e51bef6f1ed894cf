"""
Group roster endpoints.

Endpoints:
    POST /api/groups                       - Create a group led by the caller
    GET  /api/groups/<id>                  - Get a group the caller belongs to
    POST /api/groups/<id>/join             - Join a group as a member
    POST /api/groups/<id>/add-manager      - Promote a member (leader only)
    POST /api/groups/<id>/remove-manager   - Demote a manager (leader only)
"""

import logging

from flask import Blueprint, Response, g, jsonify

from app.auth import require_auth
from app.errors import BadRequest, NotFound
from app.models import GroupType
from app.routes import json_body
from app.services import groups

logger = logging.getLogger(__name__)

groups_bp = Blueprint("groups", __name__)


def _manager_id(data: dict) -> int:
    manager_id = data.get("managerId")
    if not isinstance(manager_id, int) or isinstance(manager_id, bool):
        raise BadRequest("managerIdRequired")
    return manager_id


@groups_bp.route("/groups", methods=["POST"])
@require_auth
def create_group() -> tuple[Response, int]:
    data = json_body()
    group = groups.create_group(g.user, data.get("name", ""), data.get("type", GroupType.GUILD.value))
    return jsonify(group.to_dict()), 201


@groups_bp.route("/groups/<group_id>", methods=["GET"])
@require_auth
def get_group(group_id: str) -> tuple[Response, int]:
    group = groups.get_group(group_id)
    if not groups.is_member(group.id, g.user.id):
        raise NotFound("groupNotFound")
    return jsonify(group.to_dict()), 200


@groups_bp.route("/groups/<group_id>/join", methods=["POST"])
@require_auth
def join_group(group_id: str) -> tuple[Response, int]:
    group = groups.get_group(group_id)
    groups.join_group(group, g.user)
    return jsonify(group.to_dict()), 200


@groups_bp.route("/groups/<group_id>/add-manager", methods=["POST"])
@require_auth
def add_manager(group_id: str) -> tuple[Response, int]:
    group = groups.get_group(group_id)
    groups.add_manager(group, g.user, _manager_id(json_body()))
    return jsonify(group.to_dict()), 200


@groups_bp.route("/groups/<group_id>/remove-manager", methods=["POST"])
@require_auth
def remove_manager(group_id: str) -> tuple[Response, int]:
    group = groups.get_group(group_id)
    groups.remove_manager(group, g.user, _manager_id(json_body()))
    return jsonify(group.to_dict()), 200

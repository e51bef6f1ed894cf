"""
REST API endpoints for group tasks.

Endpoints:
    GET    /api/health                              - Health check
    POST   /api/tasks/group/<group_id>              - Create a master task
    GET    /api/tasks/group/<group_id>              - List a group's master tasks
    GET    /api/tasks/user                          - List the caller's task copies
    GET    /api/tasks/<id>                          - Get a copy or master task
    PUT    /api/tasks/<id>                          - Edit a master task
    DELETE /api/tasks/<id>                          - Delete a master task
    POST   /api/tasks/<id>/assign/<user_id>         - Assign a master to a member
    POST   /api/tasks/<id>/unassign/<user_id>       - Remove a member's copy
    POST   /api/tasks/<id>/approve/<user_id>        - Approve a member's copy
    POST   /api/tasks/<id>/score/<direction>        - Score the caller's copy
"""

import logging
import os

from flask import Blueprint, Response, g, jsonify, request

from app.auth import require_auth
from app.routes import json_body
from app.services import tasks

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """Health check endpoint for deployment verification."""
    return jsonify({
        "status": "healthy",
        "environment": os.getenv("ENVIRONMENT", "unknown"),
        "version": os.getenv("APP_VERSION", "unknown")
    }), 200


@api_bp.route("/tasks/group/<group_id>", methods=["POST"])
@require_auth
def create_group_task(group_id: str) -> tuple[Response, int]:
    """
    Create a master task owned by a group.

    Request Body (JSON):
        text: Task text (required)
        notes: Longer description (optional)
        type: ``todo`` or ``daily`` (optional, default: todo)
        requiresApproval: Whether scoring needs manager sign-off (optional)
        sharedCompletion: none, singleCompletion or allAssignedCompletion

    Returns:
        JSON response with the master task and 201 status code.
    """
    logger.info(f"POST /api/tasks/group/{group_id} - Creating group task")
    master = tasks.create_task(group_id, json_body(), g.user)
    return jsonify(master.to_dict()), 201


@api_bp.route("/tasks/group/<group_id>", methods=["GET"])
@require_auth
def get_group_tasks(group_id: str) -> tuple[Response, int]:
    """
    List master tasks of a group.

    Query Parameters:
        type: todos, completedTodos or dailys. Without it, every task
            except completed todos is listed.
    """
    masters = tasks.list_group_tasks(group_id, g.user, request.args.get("type"))
    logger.info(f"Found {len(masters)} tasks for group {group_id}")
    return jsonify([master.to_dict() for master in masters]), 200


@api_bp.route("/tasks/user", methods=["GET"])
@require_auth
def get_user_tasks() -> tuple[Response, int]:
    """List the caller's copies of group tasks."""
    copies = tasks.list_user_tasks(g.user)
    return jsonify([copy.to_dict() for copy in copies]), 200


@api_bp.route("/tasks/<task_id>", methods=["GET"])
@require_auth
def get_task(task_id: str) -> tuple[Response, int]:
    return jsonify(tasks.get_task(task_id, g.user)), 200


@api_bp.route("/tasks/<task_id>", methods=["PUT"])
@require_auth
def update_task(task_id: str) -> tuple[Response, int]:
    """
    Edit a master task's text or notes.

    The change is copied to every assignee's copy.
    """
    logger.info(f"PUT /api/tasks/{task_id} - Updating task")
    master = tasks.update_task(task_id, json_body(), g.user)
    return jsonify(master.to_dict()), 200


@api_bp.route("/tasks/<task_id>", methods=["DELETE"])
@require_auth
def delete_task(task_id: str) -> tuple[Response, int]:
    """Delete a master task together with all of its copies."""
    logger.info(f"DELETE /api/tasks/{task_id} - Deleting task")
    tasks.delete_task(task_id, g.user)
    return jsonify({"message": "Task deleted successfully"}), 200


@api_bp.route("/tasks/<task_id>/assign/<int:user_id>", methods=["POST"])
@require_auth
def assign_task(task_id: str, user_id: int) -> tuple[Response, int]:
    logger.info(f"POST /api/tasks/{task_id}/assign/{user_id}")
    copy = tasks.assign_task(task_id, user_id, g.user)
    return jsonify(copy.to_dict()), 200


@api_bp.route("/tasks/<task_id>/unassign/<int:user_id>", methods=["POST"])
@require_auth
def unassign_task(task_id: str, user_id: int) -> tuple[Response, int]:
    logger.info(f"POST /api/tasks/{task_id}/unassign/{user_id}")
    master = tasks.unassign_task(task_id, user_id, g.user)
    return jsonify(master.to_dict()), 200


@api_bp.route("/tasks/<task_id>/approve/<int:user_id>", methods=["POST"])
@require_auth
def approve_task(task_id: str, user_id: int) -> tuple[Response, int]:
    logger.info(f"POST /api/tasks/{task_id}/approve/{user_id}")
    copy = tasks.approve_task(task_id, user_id, g.user)
    return jsonify(copy.to_dict()), 200


@api_bp.route("/tasks/<task_id>/score/<direction>", methods=["POST"])
@require_auth
def score_task(task_id: str, direction: str) -> tuple[Response, int]:
    """
    Score the caller's copy of a group task.

    Returns:
        ``{"completed", "dateCompleted"}`` with 200, or a 401 NotAuthorized
        error while the task awaits manager approval.
    """
    logger.info(f"POST /api/tasks/{task_id}/score/{direction}")
    return jsonify(tasks.score_task(task_id, direction, g.user)), 200

"""
Task synchronization engine.

Maintains the one-master/many-copies relationship between a group task
and each assignee's personal copy: creation, assignment, approval, master
edits and deletion. Functions here only stage changes in the session;
``run_in_task_scope`` commits them as one transaction per master.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select

from app import db
from app.errors import BadRequest, NotFound
from app.i18n import translate
from app.models import (
    ApprovalState,
    Group,
    GroupTask,
    MemberTask,
    SharedCompletion,
    TaskType,
    User,
    utcnow,
)
from app.services import groups, notifications
from app.services.notifications import NotificationType

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 200


def _validate_text(data: dict[str, Any], required: bool) -> None:
    if "text" not in data and not required:
        return
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        raise BadRequest("missingTaskText")
    if len(text) > MAX_TEXT_LENGTH:
        raise BadRequest("taskTextTooLong", {"max": MAX_TEXT_LENGTH})


def validate_group_task_data(data: dict[str, Any], *, creating: bool) -> None:
    """Raise ``BadRequest`` for invalid master task fields."""
    _validate_text(data, required=creating)

    if "type" in data:
        valid_types = [t.value for t in TaskType]
        if data["type"] not in valid_types:
            raise BadRequest("invalidTaskType", {"choices": ", ".join(valid_types)})

    if "sharedCompletion" in data:
        valid_policies = [p.value for p in SharedCompletion]
        if data["sharedCompletion"] not in valid_policies:
            raise BadRequest("invalidSharedCompletion", {"choices": ", ".join(valid_policies)})

    if "requiresApproval" in data and not isinstance(data["requiresApproval"], bool):
        raise BadRequest("invalidBooleanField", {"field": "requiresApproval"})

    if "notes" in data and not isinstance(data["notes"], str):
        raise BadRequest("invalidStringField", {"field": "notes"})


def get_master(task_id: str) -> GroupTask:
    master = db.session.get(GroupTask, task_id)
    if master is None:
        raise NotFound("taskNotFound")
    return master


def get_copy(copy_id: str) -> MemberTask:
    copy = db.session.get(MemberTask, copy_id)
    if copy is None:
        raise NotFound("taskNotFound")
    return copy


def copy_for(master: GroupTask, user_id: int) -> MemberTask | None:
    return db.session.scalars(
        select(MemberTask).where(
            MemberTask.group_task_id == master.id,
            MemberTask.user_id == user_id,
        )
    ).first()


def create_group_task(group: Group, data: dict[str, Any]) -> GroupTask:
    validate_group_task_data(data, creating=True)
    master = GroupTask(
        group_id=group.id,
        text=data["text"].strip(),
        notes=data.get("notes", ""),
        type=data.get("type", TaskType.TODO.value),
        requires_approval=data.get("requiresApproval", False),
        shared_completion=data.get("sharedCompletion", SharedCompletion.NONE.value),
    )
    db.session.add(master)
    logger.info("Staged group task %r in group %s", master.text, group.id)
    return master


def assign(master: GroupTask, user: User) -> MemberTask:
    """
    Create ``user``'s copy of ``master``.

    Re-assigning a user who already holds a copy is an error. The copy
    snapshots the master's display fields; its approval cycle starts
    unrequested.
    """
    if not groups.is_member(master.group_id, user.id):
        raise BadRequest("userIsNotGroupMember")
    if master.completed:
        raise BadRequest("taskAlreadyCompleted")
    if copy_for(master, user.id) is not None:
        raise BadRequest("taskAlreadyAssigned")

    copy = MemberTask(
        user_id=user.id,
        group_task_id=master.id,
        group_id=master.group_id,
        text=master.text,
        notes=master.notes,
        type=master.type,
        approval_state=ApprovalState.UNREQUESTED.value,
    )
    db.session.add(copy)
    master.touch()
    logger.info("Assigned task %s to user %s", master.id, user.id)
    return copy


def unassign(master: GroupTask, user: User) -> None:
    copy = copy_for(master, user.id)
    if copy is None:
        raise BadRequest("taskNotAssigned")
    notifications.clear_approval_requests(master.id, user.id)
    db.session.delete(copy)
    master.touch()
    logger.info("Unassigned task %s from user %s", master.id, user.id)


def delete_copies_except(master: GroupTask, keep_user_id: int) -> int:
    """
    Delete every copy of ``master`` not owned by ``keep_user_id``.

    Pending approval requests raised by the removed assignees are withdrawn
    with them.

    Returns:
        Number of copies removed.
    """
    notifications.clear_approval_requests(master.id, except_user_id=keep_user_id)
    result = db.session.execute(
        delete(MemberTask)
        .where(
            MemberTask.group_task_id == master.id,
            MemberTask.user_id != keep_user_id,
        )
        .execution_options(synchronize_session="fetch")
    )
    master.touch()
    logger.info(
        "Removed %d sibling copies of task %s, kept user %s",
        result.rowcount,
        master.id,
        keep_user_id,
    )
    return result.rowcount


def approve(master: GroupTask, user: User, approver: User) -> MemberTask:
    """
    Approve ``user``'s copy of ``master`` so their next score passes the gate.

    The assignee is told about the approval and the managers' pending
    requests for this copy are withdrawn.
    """
    copy = copy_for(master, user.id)
    if copy is None:
        raise BadRequest("taskNotAssigned")
    if copy.approval.approved:
        raise BadRequest("canOnlyApproveTaskOnce")

    now = utcnow()
    if copy.approval_requested_date is None:
        copy.approval_requested_date = now
    copy.approval_state = ApprovalState.APPROVED.value
    copy.approval_approved_date = now
    copy.approving_user_id = approver.id
    master.touch()

    notifications.clear_approval_requests(master.id, user.id)
    notifications.emit(
        user.id,
        NotificationType.GROUP_TASK_APPROVED,
        {
            "message": translate("yourTaskHasBeenApproved", {"taskText": copy.text}, user.language),
            "groupId": master.group_id,
            "taskId": master.id,
        },
    )
    logger.info("User %s approved task %s for user %s", approver.id, master.id, user.id)
    return copy


def update_master(master: GroupTask, data: dict[str, Any]) -> GroupTask:
    """Apply text/notes edits to the master and every copy."""
    validate_group_task_data(data, creating=False)
    if "text" in data:
        master.text = data["text"].strip()
    if "notes" in data:
        master.notes = data["notes"]
    copies = master.member_tasks()
    for copy in copies:
        copy.text = master.text
        copy.notes = master.notes
    master.touch()
    logger.info("Updated task %s and %d copies", master.id, len(copies))
    return master


def delete_group_task(master: GroupTask) -> None:
    """Delete ``master`` together with its copies and pending requests."""
    notifications.clear_approval_requests(master.id)
    for copy in master.member_tasks():
        db.session.delete(copy)
    db.session.delete(master)
    logger.info("Deleted task %s", master.id)

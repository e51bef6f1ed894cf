"""
Group task operations exposed to request handlers.

Each mutating operation resolves its records inside ``run_in_task_scope``
so that it is serialized against other writers on the same master and
committed as one transaction.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select

from app import db
from app.errors import BadRequest, NotAuthorized, NotFound
from app.models import GroupTask, MemberTask, TaskType, User, to_utc_iso
from app.services import approval, completion, groups, sync
from app.services.transaction import run_in_task_scope

logger = logging.getLogger(__name__)

TASK_FILTERS = ("todos", "completedTodos", "dailys")


def _owned_copy(copy_id: str, user: User) -> MemberTask:
    copy = db.session.get(MemberTask, copy_id)
    if copy is None or copy.user_id != user.id:
        raise NotFound("taskNotFound")
    return copy


def _managed_master(master_id: str, user: User) -> GroupTask:
    master = sync.get_master(master_id)
    groups.require_task_manager(groups.get_group(master.group_id), user)
    return master


def create_task(group_id: str, data: dict[str, Any], user: User) -> GroupTask:
    group = groups.get_group(group_id)
    groups.require_task_manager(group, user)
    master = sync.create_group_task(group, data)
    db.session.commit()
    logger.info("User %s created group task %s", user.id, master.id)
    return master


def assign_task(master_id: str, user_id: int, acting_user: User) -> MemberTask:
    """Assign a master task to ``user_id`` and return the new copy."""
    def operation() -> MemberTask:
        master = _managed_master(master_id, acting_user)
        return sync.assign(master, groups.get_user(user_id))

    return run_in_task_scope(operation)


def unassign_task(master_id: str, user_id: int, acting_user: User) -> GroupTask:
    def operation() -> GroupTask:
        master = _managed_master(master_id, acting_user)
        sync.unassign(master, groups.get_user(user_id))
        completion.reevaluate(master)
        return master

    return run_in_task_scope(operation)


def approve_task(master_id: str, user_id: int, approver: User) -> MemberTask:
    """Approve ``user_id``'s copy of a master task."""
    def operation() -> MemberTask:
        master = _managed_master(master_id, approver)
        return sync.approve(master, groups.get_user(user_id), approver)

    return run_in_task_scope(operation)


def update_task(master_id: str, data: dict[str, Any], acting_user: User) -> GroupTask:
    def operation() -> GroupTask:
        master = _managed_master(master_id, acting_user)
        return sync.update_master(master, data)

    return run_in_task_scope(operation)


def delete_task(task_id: str, acting_user: User) -> None:
    if db.session.get(GroupTask, task_id) is None:
        copy = db.session.get(MemberTask, task_id)
        if copy is not None and copy.user_id == acting_user.id:
            raise NotAuthorized("cantDeleteAssignedGroupTasks")
        raise NotFound("taskNotFound")

    def operation() -> None:
        sync.delete_group_task(_managed_master(task_id, acting_user))

    run_in_task_scope(operation)


def score_task(copy_id: str, direction: str, user: User) -> dict[str, Any]:
    """
    Score the caller's copy of a group task.

    Returns:
        ``{"completed", "dateCompleted"}`` of the copy after scoring.

    Raises:
        NotAuthorized: The task awaits approval. The first such attempt
            records the request and notifies managers before raising.
    """
    if direction not in completion.DIRECTIONS:
        raise BadRequest("invalidDirection", {"choices": ", ".join(completion.DIRECTIONS)})
    if db.session.get(GroupTask, copy_id) is not None:
        raise BadRequest("cantScoreMasterTask")

    def operation() -> tuple[approval.GateDecision, dict[str, Any] | None]:
        copy = _owned_copy(copy_id, user)
        master = sync.get_master(copy.group_task_id)
        decision = approval.attempt_score(master, copy, user, direction)
        if decision.rejected:
            return decision, None
        completion.score(master, copy, direction)
        return decision, {
            "completed": copy.completed,
            "dateCompleted": to_utc_iso(copy.date_completed),
        }

    decision, result = run_in_task_scope(operation)
    if decision.rejected:
        raise NotAuthorized(decision.value)
    return result


def get_task(task_id: str, user: User) -> dict[str, Any]:
    """Return a copy the caller owns, or a master of a group they belong to."""
    copy = db.session.get(MemberTask, task_id)
    if copy is not None and copy.user_id == user.id:
        return copy.to_dict()
    master = db.session.get(GroupTask, task_id)
    if master is not None and groups.is_member(master.group_id, user.id):
        return master.to_dict()
    raise NotFound("taskNotFound")


def list_user_tasks(user: User) -> list[MemberTask]:
    return list(db.session.scalars(
        select(MemberTask)
        .where(MemberTask.user_id == user.id)
        .order_by(MemberTask.created_at, MemberTask.id)
    ))


def list_group_tasks(group_id: str, user: User, task_filter: str | None = None) -> list[GroupTask]:
    """
    List the masters of a group.

    Args:
        group_id: Owning group.
        user: Caller; must belong to the group.
        task_filter: ``todos``, ``completedTodos`` or ``dailys``. Without a
            filter every master except completed todos is returned.
    """
    group = groups.get_group(group_id)
    if not groups.is_member(group.id, user.id):
        raise NotFound("groupNotFound")

    stmt = select(GroupTask).where(GroupTask.group_id == group.id)
    if task_filter is None:
        stmt = stmt.where(
            (GroupTask.type != TaskType.TODO.value) | (GroupTask.completed.is_(False))
        )
    elif task_filter == "todos":
        stmt = stmt.where(GroupTask.type == TaskType.TODO.value, GroupTask.completed.is_(False))
    elif task_filter == "completedTodos":
        stmt = stmt.where(GroupTask.type == TaskType.TODO.value, GroupTask.completed.is_(True))
    elif task_filter == "dailys":
        stmt = stmt.where(GroupTask.type == TaskType.DAILY.value)
    else:
        raise BadRequest("invalidTaskFilter", {"choices": ", ".join(TASK_FILTERS)})

    return list(db.session.scalars(stmt.order_by(GroupTask.created_at, GroupTask.id)))

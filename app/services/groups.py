"""
Group roster.

Owns just enough of group structure for the task engine: who belongs to a
group and who may manage its tasks (the leader plus members holding the
manager role).
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from app import db
from app.errors import BadRequest, NotAuthorized, NotFound
from app.models import Group, GroupMembership, GroupType, MemberRole, User

logger = logging.getLogger(__name__)


def get_group(group_id: str) -> Group:
    group = db.session.get(Group, group_id)
    if group is None:
        raise NotFound("groupNotFound")
    return group


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("userNotFound")
    return user


def membership_for(group_id: str, user_id: int) -> GroupMembership | None:
    return db.session.scalars(
        select(GroupMembership).where(
            GroupMembership.group_id == group_id,
            GroupMembership.user_id == user_id,
        )
    ).first()


def is_member(group_id: str, user_id: int) -> bool:
    return membership_for(group_id, user_id) is not None


def can_manage_tasks(group: Group, user_id: int) -> bool:
    if group.leader_id == user_id:
        return True
    membership = membership_for(group.id, user_id)
    return membership is not None and membership.can_manage


def require_task_manager(group: Group, user: User) -> None:
    if not can_manage_tasks(group, user.id):
        raise NotAuthorized("onlyGroupLeaderCanEditTasks")


def managers_of(group: Group) -> list[int]:
    """
    Return the ids of everyone who can approve tasks in ``group``.

    The leader comes first, followed by managers in the order they joined.
    """
    managers = db.session.scalars(
        select(GroupMembership.user_id)
        .where(
            GroupMembership.group_id == group.id,
            GroupMembership.role == MemberRole.MANAGER.value,
        )
        .order_by(GroupMembership.id)
    ).all()
    return [group.leader_id] + [user_id for user_id in managers if user_id != group.leader_id]


def create_group(leader: User, name: str, group_type: str = GroupType.GUILD.value) -> Group:
    if not name or not name.strip():
        raise BadRequest("missingGroupName")
    valid_types = [t.value for t in GroupType]
    if group_type not in valid_types:
        raise BadRequest("invalidGroupType", {"choices": ", ".join(valid_types)})

    group = Group(name=name.strip(), type=group_type, leader_id=leader.id)
    db.session.add(group)
    db.session.flush()
    db.session.add(GroupMembership(group_id=group.id, user_id=leader.id, role=MemberRole.LEADER.value))
    db.session.commit()
    logger.info("User %s created group %s", leader.id, group.id)
    return group


def join_group(group: Group, user: User) -> GroupMembership:
    if is_member(group.id, user.id):
        raise BadRequest("alreadyGroupMember")
    membership = GroupMembership(group_id=group.id, user_id=user.id, role=MemberRole.MEMBER.value)
    db.session.add(membership)
    db.session.commit()
    logger.info("User %s joined group %s", user.id, group.id)
    return membership


def _set_manager_role(group: Group, acting_user: User, manager_id: int, role: MemberRole) -> None:
    if group.leader_id != acting_user.id:
        raise NotAuthorized("onlyGroupLeaderCanManageManagers")
    if manager_id == group.leader_id:
        raise BadRequest("leaderCannotBeManager")
    membership = membership_for(group.id, manager_id)
    if membership is None:
        raise BadRequest("userIsNotGroupMember")
    if role is MemberRole.MEMBER and membership.role != MemberRole.MANAGER.value:
        raise BadRequest("userIsNotManager")
    membership.role = role.value
    db.session.commit()


def add_manager(group: Group, acting_user: User, manager_id: int) -> None:
    _set_manager_role(group, acting_user, manager_id, MemberRole.MANAGER)
    logger.info("User %s is now a manager of group %s", manager_id, group.id)


def remove_manager(group: Group, acting_user: User, manager_id: int) -> None:
    _set_manager_role(group, acting_user, manager_id, MemberRole.MEMBER)
    logger.info("User %s is no longer a manager of group %s", manager_id, group.id)

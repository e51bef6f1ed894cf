"""
Database models for the group task service.

A group owns master tasks (``GroupTask``). Assigning a master to a member
creates that member's own copy (``MemberTask``), linked back to the master
through the indexed ``group_task_id`` column rather than a live object
graph. Approval state lives on each copy; the master's ``approval`` view
is an aggregate of its copies.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import select

from app import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def ensure_utc(value: datetime) -> datetime:
    """Normalize datetimes to timezone-aware UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_utc_iso(value: datetime | None) -> str | None:
    """
    Convert datetime to an ISO-8601 UTC string.

    SQLite commonly returns naive datetime values even when timezone-aware
    columns are declared. For API contracts, always normalize to UTC.
    """
    if value is None:
        return None
    return ensure_utc(value).isoformat()


class GroupType(str, Enum):
    """Kinds of groups that can own tasks."""

    GUILD = "guild"
    PARTY = "party"


class MemberRole(str, Enum):
    """Role of a user inside a group."""

    LEADER = "leader"
    MANAGER = "manager"
    MEMBER = "member"


class TaskType(str, Enum):
    """Task types that carry completion semantics."""

    TODO = "todo"
    DAILY = "daily"


class SharedCompletion(str, Enum):
    """How one assignee's completion affects the master and sibling copies."""

    NONE = "none"
    SINGLE_COMPLETION = "singleCompletion"
    ALL_ASSIGNED_COMPLETION = "allAssignedCompletion"


class ApprovalState(str, Enum):
    """
    Approval cycle of one assignee's copy.

    ``unrequested -> requested -> approved``. A manager may approve straight
    from ``unrequested``; an approved copy always counts as requested.
    """

    UNREQUESTED = "unrequested"
    REQUESTED = "requested"
    APPROVED = "approved"

    @property
    def requested(self) -> bool:
        return self is not ApprovalState.UNREQUESTED

    @property
    def approved(self) -> bool:
        return self is ApprovalState.APPROVED


class User(db.Model):
    """
    Local projection of an authenticated identity.

    Rows are upserted from JWT claims on each authenticated request; the
    service never registers users itself.
    """

    __tablename__ = "users"

    id: int = db.Column(db.Integer, primary_key=True, autoincrement=False)
    username: str = db.Column(db.String(80), nullable=False)
    language: str = db.Column(db.String(10), nullable=False, default="en")
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self, notifications: list[Notification] | None = None) -> dict[str, Any]:
        data = {
            "id": self.id,
            "username": self.username,
            "preferences": {"language": self.language},
        }
        if notifications is not None:
            data["notifications"] = [notification.to_dict() for notification in notifications]
        return data

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.username}>"


class Group(db.Model):
    """A guild or party that owns group tasks."""

    __tablename__ = "groups"

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    name: str = db.Column(db.String(120), nullable=False)
    type: str = db.Column(db.String(20), nullable=False, default=GroupType.GUILD.value)
    leader_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        memberships = db.session.scalars(
            select(GroupMembership)
            .where(GroupMembership.group_id == self.id)
            .order_by(GroupMembership.id)
        ).all()
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "leader": self.leader_id,
            "managers": [m.user_id for m in memberships if m.role == MemberRole.MANAGER.value],
            "memberIds": [m.user_id for m in memberships],
            "createdAt": to_utc_iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Group {self.id}: {self.name}>"


class GroupMembership(db.Model):
    """Membership of one user in one group, with their role."""

    __tablename__ = "group_memberships"
    __table_args__ = (db.UniqueConstraint("group_id", "user_id", name="uq_group_member"),)

    id: int = db.Column(db.Integer, primary_key=True)
    group_id: str = db.Column(db.String(36), db.ForeignKey("groups.id"), nullable=False, index=True)
    user_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role: str = db.Column(db.String(20), nullable=False, default=MemberRole.MEMBER.value)

    @property
    def can_manage(self) -> bool:
        return self.role in (MemberRole.LEADER.value, MemberRole.MANAGER.value)


def _approval_view(
    state: ApprovalState,
    requested_date: datetime | None,
    approved_date: datetime | None = None,
) -> dict[str, Any]:
    return {
        "requested": state.requested,
        "requestedDate": to_utc_iso(requested_date),
        "approved": state.approved,
        "dateApproved": to_utc_iso(approved_date),
    }


class GroupTask(db.Model):
    """
    Master record of a task owned by a group.

    Attributes:
        id: Unique identifier (uuid) of the master task.
        group_id: Owning group.
        text: Short title of the task.
        notes: Optional longer description.
        type: ``todo`` or ``daily``.
        requires_approval: Gates scoring until a manager approves the copy.
        shared_completion: Policy applied when an assignee completes.
        completed: Whether the master is completed; only moves forward.
        date_completed: When the master became completed.
        version: Optimistic-concurrency counter checked on every write.
    """

    __tablename__ = "group_tasks"

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    group_id: str = db.Column(db.String(36), db.ForeignKey("groups.id"), nullable=False, index=True)
    text: str = db.Column(db.String(200), nullable=False)
    notes: str = db.Column(db.Text, nullable=False, default="")
    type: str = db.Column(db.String(20), nullable=False, default=TaskType.TODO.value)
    requires_approval: bool = db.Column(db.Boolean, nullable=False, default=False)
    shared_completion: str = db.Column(
        db.String(30),
        nullable=False,
        default=SharedCompletion.NONE.value
    )
    completed: bool = db.Column(db.Boolean, nullable=False, default=False)
    date_completed: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: datetime = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow
    )
    version: int = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def policy(self) -> SharedCompletion:
        return SharedCompletion(self.shared_completion)

    def touch(self) -> None:
        """Mark the master as written so concurrent writers conflict on its version."""
        self.updated_at = utcnow()

    def member_tasks(self) -> list[MemberTask]:
        return list(db.session.scalars(
            select(MemberTask)
            .where(MemberTask.group_task_id == self.id)
            .order_by(MemberTask.created_at, MemberTask.id)
        ))

    def approval_summary(self, copies: list[MemberTask]) -> dict[str, Any]:
        """Aggregate the copies' approval states into the master's view."""
        states = [copy.approval for copy in copies]
        requested_dates = [
            ensure_utc(c.approval_requested_date) for c in copies if c.approval_requested_date
        ]
        if copies and all(state.approved for state in states):
            state = ApprovalState.APPROVED
        elif any(state.requested for state in states):
            state = ApprovalState.REQUESTED
        else:
            state = ApprovalState.UNREQUESTED
        return _approval_view(state, min(requested_dates) if requested_dates else None)

    def to_dict(self) -> dict[str, Any]:
        copies = self.member_tasks()
        return {
            "id": self.id,
            "text": self.text,
            "notes": self.notes,
            "type": self.type,
            "groupId": self.group_id,
            "requiresApproval": self.requires_approval,
            "sharedCompletion": self.shared_completion,
            "assignedUserIds": [copy.user_id for copy in copies],
            "approval": self.approval_summary(copies),
            "completed": self.completed,
            "dateCompleted": to_utc_iso(self.date_completed),
            "createdAt": to_utc_iso(self.created_at),
            "updatedAt": to_utc_iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<GroupTask {self.id}: {self.text}>"


class MemberTask(db.Model):
    """
    One assignee's synchronized copy of a ``GroupTask``.

    The copy mirrors the master's display fields and holds its own
    completion and approval state until propagation decides otherwise.
    """

    __tablename__ = "member_tasks"
    __table_args__ = (
        db.UniqueConstraint("group_task_id", "user_id", name="uq_member_task_assignee"),
    )

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    user_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    group_task_id: str = db.Column(
        db.String(36),
        db.ForeignKey("group_tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    group_id: str = db.Column(db.String(36), db.ForeignKey("groups.id"), nullable=False)
    text: str = db.Column(db.String(200), nullable=False)
    notes: str = db.Column(db.Text, nullable=False, default="")
    type: str = db.Column(db.String(20), nullable=False, default=TaskType.TODO.value)
    completed: bool = db.Column(db.Boolean, nullable=False, default=False)
    date_completed: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)
    approval_state: str = db.Column(
        db.String(20),
        nullable=False,
        default=ApprovalState.UNREQUESTED.value
    )
    approval_requested_date: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)
    approval_approved_date: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)
    approving_user_id: int | None = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: datetime = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow
    )

    group_task = db.relationship("GroupTask", lazy="joined")

    @property
    def approval(self) -> ApprovalState:
        return ApprovalState(self.approval_state)

    def to_dict(self) -> dict[str, Any]:
        master = self.group_task
        return {
            "id": self.id,
            "userId": self.user_id,
            "text": self.text,
            "notes": self.notes,
            "type": self.type,
            "completed": self.completed,
            "dateCompleted": to_utc_iso(self.date_completed),
            "group": {
                "id": self.group_id,
                "taskId": self.group_task_id,
                "requiresApproval": master.requires_approval,
                "sharedCompletion": master.shared_completion,
                "approval": _approval_view(
                    self.approval,
                    self.approval_requested_date,
                    self.approval_approved_date,
                ),
            },
            "createdAt": to_utc_iso(self.created_at),
            "updatedAt": to_utc_iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<MemberTask {self.id} of {self.group_task_id} for user {self.user_id}>"


class Notification(db.Model):
    """
    Pending notification waiting to be read by its recipient.

    The autoincrement ``id`` doubles as the delivery order.
    ``task_id`` mirrors ``data["taskId"]`` so requests about one master
    can be withdrawn without scanning the table.
    """

    __tablename__ = "notifications"

    id: int = db.Column(db.Integer, primary_key=True)
    user_id: int = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    type: str = db.Column(db.String(40), nullable=False)
    task_id: str | None = db.Column(db.String(36), nullable=True, index=True)
    data: dict = db.Column(db.JSON, nullable=False, default=dict)
    created_at: datetime = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "data": self.data,
            "createdAt": to_utc_iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Notification {self.id} {self.type} for user {self.user_id}>"

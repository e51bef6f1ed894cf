"""
Notification emitter.

Appends notification rows to a recipient's pending collection. Rows are
added to the current session, so they commit together with the change
that produced them; the caller never waits on delivery. Readers get them
in emission order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

from sqlalchemy import delete, select

from app import db
from app.models import Notification

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    GROUP_TASK_APPROVAL = "GROUP_TASK_APPROVAL"
    GROUP_TASK_APPROVED = "GROUP_TASK_APPROVED"


def emit(user_id: int, notification_type: NotificationType, data: dict[str, Any]) -> Notification:
    """Queue one notification for ``user_id`` in the current transaction."""
    notification = Notification(
        user_id=user_id,
        type=notification_type.value,
        task_id=data.get("taskId"),
        data=data,
    )
    db.session.add(notification)
    logger.info("Queued %s notification for user %s", notification_type.value, user_id)
    return notification


def pending_for(user_id: int) -> list[Notification]:
    return list(db.session.scalars(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.id)
    ))


def mark_read(user_id: int, notification_ids: Iterable[int] | None = None) -> int:
    """
    Clear pending notifications of ``user_id``.

    Args:
        user_id: Recipient whose notifications are cleared.
        notification_ids: Only clear these; ``None`` clears everything.

    Returns:
        Number of notifications removed.
    """
    stmt = delete(Notification).where(Notification.user_id == user_id)
    if notification_ids is not None:
        stmt = stmt.where(Notification.id.in_(list(notification_ids)))
    result = db.session.execute(stmt)
    logger.info("Cleared %d notifications for user %s", result.rowcount, user_id)
    return result.rowcount


def clear_approval_requests(
    task_id: str,
    user_id: int | None = None,
    *,
    except_user_id: int | None = None,
) -> int:
    """
    Remove pending approval requests raised for a master task.

    Args:
        task_id: Master task the requests refer to.
        user_id: Only clear requests raised by this assignee.
        except_user_id: Keep requests raised by this assignee.

    Returns:
        Number of notifications removed.
    """
    requester = Notification.data["userId"].as_integer()
    stmt = delete(Notification).where(
        Notification.type == NotificationType.GROUP_TASK_APPROVAL.value,
        Notification.task_id == task_id,
    )
    if user_id is not None:
        stmt = stmt.where(requester == user_id)
    if except_user_id is not None:
        stmt = stmt.where(requester != except_user_id)
    result = db.session.execute(stmt.execution_options(synchronize_session="fetch"))
    if result.rowcount:
        logger.info("Withdrew %d approval requests for task %s", result.rowcount, task_id)
    return result.rowcount

"""
Approval gate.

Decides, per scoring attempt, whether a copy may be scored. Copies of a
master that requires approval are blocked until a manager approves them.
The first blocked attempt records the request and notifies every manager;
later attempts while the request is pending are rejected quietly.
"""

from __future__ import annotations

import logging
from enum import Enum

from app.i18n import translate
from app.models import ApprovalState, GroupTask, MemberTask, User, utcnow
from app.services import groups, notifications
from app.services.notifications import NotificationType

logger = logging.getLogger(__name__)


class GateDecision(str, Enum):
    """Outcome of a scoring attempt at the gate, with its message key."""

    PASS = "pass"
    APPROVAL_REQUESTED = "taskApprovalHasBeenRequested"
    APPROVAL_PENDING = "taskRequiresApproval"

    @property
    def rejected(self) -> bool:
        return self is not GateDecision.PASS


def evaluate(master: GroupTask, copy: MemberTask) -> GateDecision:
    """Classify a scoring attempt without changing anything."""
    if not master.requires_approval or copy.approval.approved:
        return GateDecision.PASS
    if copy.approval is ApprovalState.UNREQUESTED:
        return GateDecision.APPROVAL_REQUESTED
    return GateDecision.APPROVAL_PENDING


def request_approval(master: GroupTask, copy: MemberTask, scorer: User, direction: str) -> list[int]:
    """
    Record the approval request on ``copy`` and notify the managers.

    The manager set is resolved now; managers added later are not
    notified about this request.

    Returns:
        Ids of the users that were notified.
    """
    copy.approval_state = ApprovalState.REQUESTED.value
    copy.approval_requested_date = utcnow()

    group = groups.get_group(master.group_id)
    variables = {
        "user": scorer.username,
        "taskName": copy.text,
        "taskId": copy.id,
        "direction": direction,
    }
    recipients = groups.managers_of(group)
    for manager_id in recipients:
        manager = groups.get_user(manager_id)
        notifications.emit(
            manager_id,
            NotificationType.GROUP_TASK_APPROVAL,
            {
                "message": translate("userHasRequestedTaskApproval", variables, manager.language),
                "groupId": group.id,
                "taskId": master.id,
                "userId": scorer.id,
                "direction": direction,
            },
        )
    logger.info(
        "User %s requested approval for task %s, notified %d managers",
        scorer.id,
        master.id,
        len(recipients),
    )
    return recipients


def attempt_score(master: GroupTask, copy: MemberTask, scorer: User, direction: str) -> GateDecision:
    """
    Screen a scoring attempt.

    On the first blocked attempt the request is recorded and managers are
    notified; the caller commits that and then rejects the score. A
    rejected attempt never touches the copy's completion fields.
    """
    decision = evaluate(master, copy)
    if decision is GateDecision.APPROVAL_REQUESTED:
        request_approval(master, copy, scorer, direction)
        master.touch()
    elif decision is GateDecision.APPROVAL_PENDING:
        logger.info("Task %s for user %s is still awaiting approval", master.id, scorer.id)
    return decision

"""
Completion propagation engine.

Runs after the approval gate let a score through. Marks the scorer's copy
completed and applies the master's sharedCompletion policy:

- ``none``: each assignee completes independently; the master is untouched.
- ``singleCompletion``: the first completion completes the master and
  removes every sibling copy.
- ``allAssignedCompletion``: the master completes once every live copy is
  completed, in whatever order.

Completion only moves forward; nothing here reverts it.
"""

from __future__ import annotations

import logging

from app.models import GroupTask, MemberTask, SharedCompletion, utcnow
from app.services import sync

logger = logging.getLogger(__name__)

DIRECTION_UP = "up"
DIRECTION_DOWN = "down"
DIRECTIONS = (DIRECTION_UP, DIRECTION_DOWN)


def _complete_master(master: GroupTask) -> None:
    if master.completed:
        return
    master.completed = True
    master.date_completed = utcnow()
    logger.info("Group task %s completed", master.id)


def score(master: GroupTask, copy: MemberTask, direction: str) -> MemberTask:
    """Apply a score that already passed the gate."""
    if direction == DIRECTION_UP:
        return score_up(master, copy)
    # Scoring down never reverts completion.
    master.touch()
    return copy


def score_up(master: GroupTask, copy: MemberTask) -> MemberTask:
    master.touch()
    if copy.completed:
        return copy

    copy.completed = True
    copy.date_completed = utcnow()
    logger.info("User %s completed their copy of task %s", copy.user_id, master.id)

    policy = master.policy
    if policy is SharedCompletion.SINGLE_COMPLETION:
        _complete_master(master)
        sync.delete_copies_except(master, copy.user_id)
    elif policy is SharedCompletion.ALL_ASSIGNED_COMPLETION:
        reevaluate(master)
    return copy


def reevaluate(master: GroupTask) -> bool:
    """
    Complete an ``allAssignedCompletion`` master whose live copies are all done.

    Returns:
        Whether the master is completed afterwards.
    """
    if master.policy is not SharedCompletion.ALL_ASSIGNED_COMPLETION:
        return master.completed
    copies = master.member_tasks()
    if copies and all(copy.completed for copy in copies):
        _complete_master(master)
    else:
        remaining = sum(1 for copy in copies if not copy.completed)
        logger.info("Group task %s waits on %d more assignees", master.id, remaining)
    return master.completed

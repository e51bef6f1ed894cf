"""
Per-master task scope.

Writers on one group task are serialized optimistically: every operation
touches the master row, whose ``version`` column SQLAlchemy checks on
UPDATE/DELETE. A writer that lost the race gets ``StaleDataError`` at
commit, is rolled back, and runs again against fresh state. Operations on
different masters never contend.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from app import db
from app.errors import Conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_in_task_scope(operation: Callable[[], T], *, max_attempts: int | None = None) -> T:
    """
    Run ``operation`` and commit it as one transaction, retrying on conflicts.

    ``operation`` must load the records it needs itself so that a retry sees
    the state committed by the winning writer.

    Args:
        operation: Callable that performs the writes and returns a result.
        max_attempts: Overrides ``TASK_SCOPE_MAX_RETRIES``.

    Returns:
        Whatever ``operation`` returned on the attempt that committed.

    Raises:
        Conflict: Every attempt lost a concurrent write.
    """
    attempts = max_attempts or int(current_app.config.get("TASK_SCOPE_MAX_RETRIES", 3))
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
            db.session.commit()
            return result
        except StaleDataError:
            db.session.rollback()
            logger.warning("Concurrent update on group task, attempt %d/%d", attempt, attempts)
        except Exception:
            db.session.rollback()
            raise
    raise Conflict("taskUpdateConflict")

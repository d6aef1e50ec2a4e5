"""
Completion Ledger Service

Owns the per-store TaskCompletion and StoreProgress rows: idempotent
fetch-or-create, the completion state machine and progress recompute.

Rows are keyed by composite unique constraints. Creation inserts inside a
SAVEPOINT; when a concurrent worker wins the race the IntegrityError is
absorbed and the existing row is re-fetched.
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.catalog import Mission, MissionTask
from ..models.ledger import (
    TaskCompletion,
    TaskCompletionStatus,
    StoreProgress,
    ProgressStatus,
)

logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')
TWO_PLACES = Decimal('0.01')


def calculate_percentage(completed: int, total: int) -> Decimal:
    """100 * completed / total rounded half-up to two decimals, clamped to [0, 100]."""
    if total <= 0:
        return Decimal('0.00')
    percentage = (Decimal(completed) * HUNDRED / Decimal(total)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return min(max(percentage, Decimal('0.00')), HUNDRED.quantize(TWO_PLACES))


def _find(model, lock: bool = False, **keys):
    query = model.query.filter_by(**keys)
    if lock:
        query = query.with_for_update()
    return query.first()


def get_or_create(model, defaults: Dict[str, Any] = None, lock: bool = False, **keys) -> Tuple[Any, bool]:
    """
    Fetch the row matching `keys`, inserting it if missing.

    The insert runs in a nested transaction so a unique-constraint
    violation (another worker created the row first) only rolls back
    the savepoint.

    Returns:
        (instance, created)
    """
    instance = _find(model, lock=lock, **keys)
    if instance is not None:
        return instance, False

    try:
        with db.session.begin_nested():
            instance = model(**keys, **(defaults or {}))
            db.session.add(instance)
    except IntegrityError:
        logger.info(f"Concurrent insert on {model.__tablename__} {keys}, re-fetching existing row")
        instance = _find(model, lock=lock, **keys)
        if instance is None:
            raise
        return instance, False

    return instance, True


class LedgerService:
    """Service for the completion ledger."""

    # ==================== Task completions ====================

    def get_task_completion(self, store_id: int, task_id: int, mission_id: int) -> Optional[TaskCompletion]:
        return _find(TaskCompletion, store_id=store_id, task_id=task_id, mission_id=mission_id)

    def get_or_create_task_completion(self, store_id: int, task_id: int, mission_id: int) -> TaskCompletion:
        """Fetch-or-create the (store, task, mission) row, initially not_started."""
        completion, _ = get_or_create(
            TaskCompletion,
            defaults={'status': TaskCompletionStatus.NOT_STARTED.value},
            store_id=store_id,
            task_id=task_id,
            mission_id=mission_id,
        )
        return completion

    def completed_task_count(self, store_id: int, mission_id: int) -> int:
        """Completed tasks of the mission for this store, counting only tasks still attached."""
        attached = select(MissionTask.task_id).where(MissionTask.mission_id == mission_id)
        return db.session.query(func.count(TaskCompletion.id)).filter(
            TaskCompletion.store_id == store_id,
            TaskCompletion.mission_id == mission_id,
            TaskCompletion.status == TaskCompletionStatus.COMPLETED.value,
            TaskCompletion.task_id.in_(attached),
        ).scalar() or 0

    def total_task_count(self, mission_id: int) -> int:
        return MissionTask.query.filter_by(mission_id=mission_id).count()

    def ignore_task(self, store_id: int, task_id: int, mission_id: int) -> bool:
        """
        Mark a task ignored for a store (explicit user action).

        Returns:
            False if the task was already completed
        """
        completion = self.get_or_create_task_completion(store_id, task_id, mission_id)
        return completion.ignore()

    # ==================== Store progress ====================

    def get_progress(self, store_id: int, mission_id: int) -> Optional[StoreProgress]:
        return _find(StoreProgress, store_id=store_id, mission_id=mission_id)

    def get_or_create_progress(self, store_id: int, mission_id: int, lock: bool = False) -> StoreProgress:
        """
        Fetch-or-create the (store, mission) progress row.

        Args:
            lock: SELECT ... FOR UPDATE so concurrent recomputes for the
                same store and mission serialize (ignored on SQLite)
        """
        progress, _ = get_or_create(
            StoreProgress,
            defaults={
                'status': ProgressStatus.NOT_STARTED.value,
                'progress_percentage': Decimal('0.00'),
            },
            lock=lock,
            store_id=store_id,
            mission_id=mission_id,
        )
        return progress

    def recompute_progress(self, progress: StoreProgress, mission: Mission, now: datetime = None) -> bool:
        """
        Recompute the progress percentage and advance the status.

        - No attached tasks: percentage 0, status untouched.
        - Completed and ignored rows keep their status; completed_at is
          stamped once and never recalculated.

        Returns:
            True if this call moved the row into `completed`
        """
        total = self.total_task_count(mission.id)
        if total == 0:
            progress.progress_percentage = Decimal('0.00')
            return False

        completed = self.completed_task_count(progress.store_id, mission.id)
        percentage = calculate_percentage(completed, total)
        progress.progress_percentage = percentage

        if progress.is_completed() or progress.is_ignored():
            return False

        if percentage >= HUNDRED:
            progress.status = ProgressStatus.COMPLETED.value
            if progress.completed_at is None:
                progress.completed_at = now or datetime.utcnow()
            logger.info(f"Store {progress.store_id} completed mission {mission.key}")
            return True

        if percentage > 0:
            progress.status = ProgressStatus.IN_PROGRESS.value
        return False

    def ignore_mission(self, store_id: int, mission_id: int) -> bool:
        """
        Mark the mission ignored for a store (explicit user action).

        Returns:
            False if the mission is already completed for the store
        """
        progress = self.get_or_create_progress(store_id, mission_id, lock=True)
        if progress.is_completed():
            return False
        progress.ignore()
        return True

    # ==================== Store-wide counts ====================

    def count_completed_missions(self, store_id: int) -> int:
        return StoreProgress.query.filter_by(
            store_id=store_id,
            status=ProgressStatus.COMPLETED.value,
        ).count()

    def count_completed_tasks(self, store_id: int) -> int:
        return TaskCompletion.query.filter_by(
            store_id=store_id,
            status=TaskCompletionStatus.COMPLETED.value,
        ).count()

    def completions_for_mission(self, store_id: int, mission_id: int) -> Dict[int, TaskCompletion]:
        """Completion rows of one mission for a store, keyed by task id."""
        rows = TaskCompletion.query.filter_by(store_id=store_id, mission_id=mission_id).all()
        return {row.task_id: row for row in rows}

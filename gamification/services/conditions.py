"""
Condition Evaluator

Stateless predicates shared by mission lockers and rules. A condition is a
(condition_type, payload) pair evaluated for one store.

Every failure mode is closed: unknown types, missing keys, wrong types and
unparseable dates evaluate to False rather than raising.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.catalog import ConditionType, Mission
from ..models.ledger import (
    TaskCompletion,
    TaskCompletionStatus,
    StoreProgress,
    ProgressStatus,
)
from ..utils.dates import parse_datetime

logger = logging.getLogger(__name__)

# handler(store_id, payload) -> bool
CustomHandler = Callable[[int, Dict[str, Any]], bool]

# Ids are stored as signed 32-bit INTEGER columns
MAX_ID = 2 ** 31 - 1


def _as_id(value: Any) -> int:
    """Parse a catalog id reference, raising ValueError when out of range."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid id {value!r}")
    number = int(value)
    if not 0 < number <= MAX_ID:
        raise ValueError(f"Id out of range: {value!r}")
    return number


class ConditionEvaluator:
    """
    Evaluates locker and rule conditions.

    Usage:
        evaluator = ConditionEvaluator()
        evaluator.register_custom('has_plan', lambda store_id, payload: ...)

        evaluator.evaluate('mission_completion', {'mission_id': 3}, store_id=42)
    """

    def __init__(self, clock: Callable[[], datetime] = None, custom_handlers: Dict[str, CustomHandler] = None):
        """
        Args:
            clock: Returns the current naive-UTC time (defaults to utcnow)
            custom_handlers: Initial handlers for `custom` conditions, keyed by name
        """
        self.clock = clock or datetime.utcnow
        self.custom_handlers: Dict[str, CustomHandler] = dict(custom_handlers or {})
        self._dispatch = {
            ConditionType.MISSION_COMPLETION.value: self._mission_completion,
            ConditionType.TASKS_COMPLETION.value: self._tasks_completion,
            ConditionType.DATE.value: self._date,
            ConditionType.DATE_RANGE.value: self._date_range,
            ConditionType.CUSTOM.value: self._custom,
        }

    def register_custom(self, name: str, handler: CustomHandler) -> None:
        """Register a handler for `custom` conditions whose payload names it."""
        self.custom_handlers[name] = handler

    def evaluate(
        self,
        condition_type: str,
        payload: Optional[Dict[str, Any]],
        store_id: int,
        allowed: Iterable[str] = None,
    ) -> bool:
        """
        Evaluate one condition for a store.

        Args:
            condition_type: One of ConditionType values
            payload: Condition payload (JSON object)
            store_id: Store the condition is evaluated for
            allowed: Restrict accepted condition types (lockers and rules
                accept different sets); anything else is False

        Returns:
            True if the condition holds
        """
        kind = condition_type.value if isinstance(condition_type, ConditionType) else condition_type

        if allowed is not None:
            allowed_values = {a.value if isinstance(a, ConditionType) else a for a in allowed}
            if kind not in allowed_values:
                logger.warning(f"Condition type '{kind}' not allowed here, evaluating as false")
                return False

        evaluator = self._dispatch.get(kind)
        if evaluator is None:
            logger.warning(f"Unknown condition type '{kind}', evaluating as false")
            return False

        if payload is not None and not isinstance(payload, dict):
            return False

        try:
            with db.session.begin_nested():
                return bool(evaluator(store_id, payload or {}))
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning(f"Malformed {kind} condition payload {payload!r}: {e}")
            return False
        except SQLAlchemyError as e:
            logger.error(f"Failed to evaluate {kind} condition {payload!r} for store {store_id}: {e}")
            return False

    # ==================== Condition kinds ====================

    def _mission_completion(self, store_id: int, payload: Dict[str, Any]) -> bool:
        """The referenced mission (id, or key) is completed for the store."""
        reference = payload.get('mission_id', payload.get('mission_key'))
        if reference is None or isinstance(reference, bool):
            return False

        if isinstance(reference, str) and not reference.strip().isdigit():
            mission = Mission.query.filter_by(key=reference).first()
            if not mission:
                return False
            mission_id = mission.id
        else:
            mission_id = _as_id(reference)

        return StoreProgress.query.filter_by(
            store_id=store_id,
            mission_id=mission_id,
            status=ProgressStatus.COMPLETED.value,
        ).first() is not None

    def _tasks_completion(self, store_id: int, payload: Dict[str, Any]) -> bool:
        """At least `required_count` of `task_ids` are completed for the store."""
        task_ids = payload.get('task_ids')
        if not isinstance(task_ids, list):
            return False
        task_ids = [_as_id(task_id) for task_id in task_ids]

        required = payload.get('required_count')
        required = len(task_ids) if required is None else int(required)
        if required <= 0:
            return True

        # A task completed within several missions counts once
        completed = db.session.query(
            func.count(func.distinct(TaskCompletion.task_id))
        ).filter(
            TaskCompletion.store_id == store_id,
            TaskCompletion.task_id.in_(task_ids),
            TaskCompletion.status == TaskCompletionStatus.COMPLETED.value,
        ).scalar() or 0

        return completed >= required

    def _date(self, store_id: int, payload: Dict[str, Any]) -> bool:
        unlock_date = parse_datetime(payload['unlock_date'])
        if unlock_date is None:
            return False
        return self.clock() >= unlock_date

    def _date_range(self, store_id: int, payload: Dict[str, Any]) -> bool:
        """start_date <= now <= end_date, both bounds inclusive and required."""
        start = parse_datetime(payload['start_date'])
        end = parse_datetime(payload['end_date'])
        if start is None or end is None:
            return False
        return start <= self.clock() <= end

    def _custom(self, store_id: int, payload: Dict[str, Any]) -> bool:
        name = payload.get('handler')
        handler = self.custom_handlers.get(name) if isinstance(name, str) else None
        if handler is None:
            logger.warning(f"No custom condition handler registered for {name!r}")
            return False

        try:
            return bool(handler(store_id, payload))
        except Exception as e:
            logger.error(f"Custom condition handler '{name}' failed for store {store_id}: {e}")
            return False

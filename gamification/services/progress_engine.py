"""
Progress Engine

Consumes domain events for a store: matches catalog tasks, records task
completions, recomputes mission progress and grants rewards when a
mission completes.

Each (task, mission) pair is processed as one unit of work inside a
SAVEPOINT and committed on success. A failure in one unit is logged and
rolled back without affecting the other missions of the same event.
Re-delivering an event is a no-op: completed rows never transition twice
and rewards are stamped with rewards_granted_at.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.catalog import Mission, Task
from .ledger_service import LedgerService
from .reward_service import RewardGrantEngine
from .unlock_resolver import UnlockResolver

logger = logging.getLogger(__name__)


@dataclass
class EventResult:
    """What one event changed for a store."""
    completed_tasks: List[Dict[str, Any]] = field(default_factory=list)
    progress_updates: List[Dict[str, Any]] = field(default_factory=list)
    completed_missions: List[Dict[str, Any]] = field(default_factory=list)
    granted_rewards: List[Dict[str, Any]] = field(default_factory=list)
    failed_rewards: List[Dict[str, Any]] = field(default_factory=list)

    def merge(self, other: 'EventResult') -> None:
        self.completed_tasks.extend(other.completed_tasks)
        self.progress_updates.extend(other.progress_updates)
        self.completed_missions.extend(other.completed_missions)
        self.granted_rewards.extend(other.granted_rewards)
        self.failed_rewards.extend(other.failed_rewards)

    @property
    def is_empty(self) -> bool:
        return not (self.completed_tasks or self.progress_updates or self.completed_missions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'completed_tasks': self.completed_tasks,
            'progress_updates': self.progress_updates,
            'completed_missions': self.completed_missions,
            'granted_rewards': self.granted_rewards,
            'failed_rewards': self.failed_rewards,
        }


class ProgressEngine:
    """
    Evaluates events against the mission catalog.

    Usage:
        engine = ProgressEngine(reward_engine=RewardGrantEngine(config))
        result = engine.handle_event('product_created', store_id, {'is_first_product': True})
    """

    def __init__(
        self,
        ledger: LedgerService = None,
        unlock_resolver: UnlockResolver = None,
        reward_engine: RewardGrantEngine = None,
        clock: Callable[[], datetime] = None,
    ):
        self.ledger = ledger or LedgerService()
        self.unlock_resolver = unlock_resolver or UnlockResolver()
        self.reward_engine = reward_engine or RewardGrantEngine()
        self.clock = clock or datetime.utcnow

    def find_candidate_tasks(self, event_name: str, payload: Optional[Dict[str, Any]]) -> List[Task]:
        """Active tasks triggered by the event whose payload conditions match."""
        tasks = Task.query.filter_by(event_name=event_name, is_active=True).order_by(Task.id).all()
        return [task for task in tasks if task.matches_payload(payload)]

    def handle_event(self, event_name: str, store_id: int, payload: Optional[Dict[str, Any]] = None) -> EventResult:
        """
        Process one event for a store.

        Returns:
            EventResult listing only what changed; unmatched, locked,
            ignored and already-completed pairs are omitted
        """
        result = EventResult()

        tasks = self.find_candidate_tasks(event_name, payload)
        if not tasks:
            logger.debug(f"No tasks match event '{event_name}' for store {store_id}")
            return result

        for task in tasks:
            for mission in task.missions:
                if not self.unlock_resolver.is_mission_unlocked(mission, store_id):
                    continue

                unit = self._run_unit(task, mission, store_id)
                if unit is not None:
                    result.merge(unit)

        if not result.is_empty:
            logger.info(
                f"Event '{event_name}' for store {store_id}: "
                f"{len(result.completed_tasks)} tasks, {len(result.completed_missions)} missions completed"
            )
        return result

    def complete_task(self, task: Task, mission: Mission, store_id: int) -> EventResult:
        """
        Complete one explicit (task, mission) pair for a store.

        Skips the event match and the unlock check; ignored missions and
        already-terminal completions are still left untouched.
        """
        return self._run_unit(task, mission, store_id) or EventResult()

    def _run_unit(self, task: Task, mission: Mission, store_id: int) -> Optional[EventResult]:
        """Run and commit one (task, mission) unit, or roll it back and return None."""
        try:
            with db.session.begin_nested():
                unit = self._process_pair(task, mission, store_id)
            db.session.commit()
            return unit
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(
                f"Failed to process task {task.key} in mission {mission.key} for store {store_id}: {e}"
            )
            return None

    def _process_pair(self, task: Task, mission: Mission, store_id: int) -> EventResult:
        unit = EventResult()
        now = self.clock()

        # Row lock taken before touching the completion; ignored missions stay untouched
        progress = self.ledger.get_or_create_progress(store_id, mission.id, lock=True)
        if progress.is_ignored():
            return unit

        completion = self.ledger.get_or_create_task_completion(store_id, task.id, mission.id)
        if not completion.mark_completed(now):
            return unit

        unit.completed_tasks.append({
            'task_id': task.id,
            'task_key': task.key,
            'task_name': task.name,
            'mission_id': mission.id,
            'mission_key': mission.key,
            'mission_name': mission.name,
            'points': task.points,
        })
        db.session.flush()

        just_completed = self.ledger.recompute_progress(progress, mission, now)
        db.session.flush()

        unit.progress_updates.append({
            'mission_id': mission.id,
            'mission_key': mission.key,
            'mission_name': mission.name,
            'progress_percentage': float(progress.progress_percentage),
            'status': progress.status,
        })

        if just_completed and progress.rewards_granted_at is None:
            unit.completed_missions.append({
                'mission_id': mission.id,
                'mission_key': mission.key,
                'mission_name': mission.name,
                'total_points': mission.total_points,
            })

            report = self.reward_engine.grant(mission, store_id)
            progress.rewards_granted_at = now
            unit.granted_rewards.extend(outcome.to_dict() for outcome in report.granted)
            unit.failed_rewards.extend(outcome.to_dict() for outcome in report.failed)

        return unit

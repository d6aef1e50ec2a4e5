"""
Gamification Service

Facade over the progress engine, ledger and resolvers. Callers (API
blueprints, CLI commands, queue consumers) go through this class.

Handles:
- Inbound events, optionally recorded in the event log for audit/replay
- Mission listings with per-store progress, unlock and rule flags
- Progress summary, earned rewards and badges, leaderboard
- Ignoring missions and manual task completion
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select

from ..extensions import db
from ..models.catalog import Mission, Task, Reward, Badge, MissionTask
from ..models.ledger import (
    TaskCompletion,
    TaskCompletionStatus,
    StoreProgress,
    ProgressStatus,
    StoreBadge,
    EventLog,
)
from ..models.points import StorePoints
from ..utils.exceptions import MissionNotFoundError, TaskNotFoundError, ValidationError
from .conditions import ConditionEvaluator, CustomHandler
from .ledger_service import LedgerService
from .points_ledger import PointsLedger, StorePointsLedger
from .progress_engine import ProgressEngine
from .reward_service import RewardConfig, RewardGrantEngine
from .rule_resolver import RuleResolver
from .unlock_resolver import UnlockResolver

logger = logging.getLogger(__name__)


def _rate(part: int, total: int) -> float:
    if total <= 0:
        return 0
    rate = (Decimal(part) * 100 / Decimal(total)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    return float(rate)


class GamificationService:
    """
    Service for store missions.

    Usage:
        service = GamificationService.from_config(current_app.config)

        result = service.process_event('product_created', store_id, {'is_first_product': True})
        summary = service.get_progress_summary(store_id)
    """

    def __init__(
        self,
        reward_config: RewardConfig = None,
        points_ledger: PointsLedger = None,
        custom_conditions: Dict[str, CustomHandler] = None,
        log_events: bool = True,
        points_enabled: bool = True,
    ):
        self.log_events = log_events
        self.points_enabled = points_enabled
        self.points_ledger = points_ledger or StorePointsLedger()

        self.evaluator = ConditionEvaluator(custom_handlers=custom_conditions)
        self.ledger = LedgerService()
        self.unlock_resolver = UnlockResolver(self.evaluator)
        self.rule_resolver = RuleResolver(self.evaluator, self.ledger)
        self.reward_engine = RewardGrantEngine(reward_config, points_ledger=self.points_ledger)
        self.engine = ProgressEngine(
            ledger=self.ledger,
            unlock_resolver=self.unlock_resolver,
            reward_engine=self.reward_engine,
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any], **kwargs) -> 'GamificationService':
        """Build the service from Flask config (GAMIFICATION_* keys)."""
        return cls(
            reward_config=RewardConfig.from_app_config(config),
            log_events=bool(config.get('GAMIFICATION_LOG_EVENTS', True)),
            points_enabled=bool(config.get('GAMIFICATION_POINTS_ENABLED', True)),
            **kwargs
        )

    # ==================== Events ====================

    def handle_event(self, event_name: str, store_id: int, payload: Dict[str, Any] = None) -> Dict[str, Any]:
        """Run the progress engine for one event and return what changed."""
        return self.engine.handle_event(event_name, store_id, payload or {}).to_dict()

    def process_event(self, event_name: str, store_id: int, payload: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Record the event in the event log (when enabled), handle it and
        mark the log row processed.

        The log row is committed before handling so a crash leaves an
        unprocessed row for `replay_unprocessed`.
        """
        payload = payload or {}
        event = None

        if self.log_events:
            event = EventLog(store_id=store_id, event_name=event_name, event_payload=payload)
            db.session.add(event)
            db.session.commit()

        result = self.handle_event(event_name, store_id, payload)

        if event is not None:
            event.mark_processed(result)
            db.session.commit()

        response = dict(result)
        response['event_id'] = event.id if event is not None else None
        return response

    def replay_unprocessed(self, limit: int = 100, store_id: int = None) -> Dict[str, Any]:
        """
        Re-handle logged events that were never marked processed, oldest first.

        Safe to run repeatedly: the engine ignores already-completed work.
        An event that fails is rolled back, stays unprocessed and is listed
        in `failed`; the rest of the batch still runs.
        """
        query = EventLog.query.filter_by(processed=False)
        if store_id is not None:
            query = query.filter_by(store_id=store_id)
        events = query.order_by(EventLog.created_at, EventLog.id).limit(limit).all()

        replayed = 0
        failed = []
        for event in events:
            event_id = event.id
            try:
                result = self.handle_event(event.event_name, event.store_id, event.event_payload or {})
                event.mark_processed(result)
                db.session.commit()
                replayed += 1
            except Exception as e:
                db.session.rollback()
                logger.error(f"Failed to replay event {event_id}: {e}")
                failed.append(event_id)

        if replayed or failed:
            logger.info(f"Replayed {replayed} unprocessed events, {len(failed)} failed")
        return {'replayed': replayed, 'failed': failed, 'remaining': query.count()}

    def get_event_log(self, store_id: int, limit: int = 50) -> List[EventLog]:
        return EventLog.query.filter_by(store_id=store_id).order_by(
            EventLog.created_at.desc(), EventLog.id.desc()
        ).limit(limit).all()

    # ==================== Missions ====================

    def get_available_missions(self, store_id: int) -> List[Mission]:
        """Active missions in their availability window that are unlocked for the store."""
        return [
            mission for mission in Mission.available_query().all()
            if self.unlock_resolver.is_mission_unlocked(mission, store_id)
        ]

    def get_missions_with_tasks(self, store_id: int) -> List[Dict[str, Any]]:
        """Available missions with the store's progress and per-task completion."""
        return [
            self.describe_mission(mission, store_id, include_tasks=True)
            for mission in self.get_available_missions(store_id)
        ]

    def get_mission(self, mission_id: int, store_id: int) -> Dict[str, Any]:
        mission = db.session.get(Mission, mission_id)
        if not mission:
            raise MissionNotFoundError(mission_id)
        return self.describe_mission(mission, store_id, include_tasks=True)

    def describe_mission(self, mission: Mission, store_id: int, include_tasks: bool = False) -> Dict[str, Any]:
        """Mission dict with the store's progress, lock and rule flags."""
        data = mission.to_dict()
        progress = self.ledger.get_progress(store_id, mission.id)
        data['progress'] = progress.to_dict() if progress else {
            'status': ProgressStatus.NOT_STARTED.value,
            'progress_percentage': 0.0,
            'completed_at': None,
        }
        locked_by = self.unlock_resolver.first_failing_locker(mission, store_id)
        data['is_unlocked'] = locked_by is None
        data['locked_by'] = locked_by.to_dict() if locked_by else None
        data['can_start'] = self.rule_resolver.can_start(mission, store_id)
        data['rules_completed'] = self.rule_resolver.is_completed(mission, store_id)
        data['rewards'] = [reward.to_dict() for reward in mission.rewards.order_by(Reward.id)]

        if include_tasks:
            completions = self.ledger.completions_for_mission(store_id, mission.id)
            tasks = []
            for link in mission.task_links:
                task_data = link.to_dict()
                completion = completions.get(link.task_id)
                task_data['completion'] = completion.to_dict() if completion else None
                task_data['status'] = completion.status if completion else TaskCompletionStatus.NOT_STARTED.value
                tasks.append(task_data)
            data['tasks'] = tasks
        return data

    def ignore_mission(self, mission_id: int, store_id: int) -> bool:
        """
        Mark a mission ignored for the store.

        Returns:
            False if the store already completed the mission

        Raises:
            MissionNotFoundError: If the mission does not exist
        """
        mission = db.session.get(Mission, mission_id)
        if not mission:
            raise MissionNotFoundError(mission_id)

        ignored = self.ledger.ignore_mission(store_id, mission.id)
        db.session.commit()

        if ignored:
            logger.info(f"Store {store_id} ignored mission {mission.key}")
        return ignored

    # ==================== Tasks ====================

    def get_tasks(self, store_id: int) -> List[Dict[str, Any]]:
        """Active tasks with the missions they belong to and the store's completion in each."""
        completions = TaskCompletion.query.filter_by(store_id=store_id).all()
        by_pair = {(c.task_id, c.mission_id): c for c in completions}

        tasks = []
        for task in Task.query.filter_by(is_active=True).order_by(Task.id).all():
            data = task.to_dict()
            data['missions'] = [
                {
                    'mission_id': link.mission_id,
                    'sort_order': link.sort_order,
                    'status': by_pair[(task.id, link.mission_id)].status
                    if (task.id, link.mission_id) in by_pair else TaskCompletionStatus.NOT_STARTED.value,
                }
                for link in task.mission_links
            ]
            tasks.append(data)
        return tasks

    def complete_task_manually(self, task_id: int, mission_id: Optional[int], store_id: int) -> Dict[str, Any]:
        """
        Complete a task within a mission on behalf of a store.

        Progress is recomputed and rewards granted exactly as for an event.

        Raises:
            ValidationError: If mission_id is missing or the task is not in the mission
            TaskNotFoundError: If the task does not exist
        """
        task, link = self._task_in_mission(task_id, mission_id)
        result = self.engine.complete_task(task, link.mission, store_id)
        completion = self.ledger.get_task_completion(store_id, task.id, link.mission_id)

        return {
            'task_id': task.id,
            'task_key': task.key,
            'task_name': task.name,
            'mission_id': link.mission_id,
            'already_completed': not result.completed_tasks,
            'status': completion.status if completion else TaskCompletionStatus.NOT_STARTED.value,
            'completed_at': completion.completed_at.isoformat() if completion and completion.completed_at else None,
            'result': result.to_dict(),
        }

    def ignore_task(self, task_id: int, mission_id: Optional[int], store_id: int) -> bool:
        """
        Mark a task ignored within a mission for the store.

        Events and manual completion leave an ignored task untouched.

        Returns:
            False if the store already completed the task
        """
        task, link = self._task_in_mission(task_id, mission_id)
        ignored = self.ledger.ignore_task(store_id, task.id, link.mission_id)
        db.session.commit()

        if ignored:
            logger.info(f"Store {store_id} ignored task {task.key} in mission {link.mission.key}")
        return ignored

    def _task_in_mission(self, task_id: int, mission_id: Optional[int]):
        """
        Raises:
            ValidationError: If mission_id is missing or the task is not in the mission
            TaskNotFoundError: If the task does not exist
        """
        if not mission_id:
            raise ValidationError('Mission ID is required.', 'mission_id')
        try:
            mission_id = int(mission_id)
        except (TypeError, ValueError):
            raise ValidationError('Mission ID must be an integer.', 'mission_id')

        task = db.session.get(Task, task_id)
        if not task:
            raise TaskNotFoundError(task_id)

        link = MissionTask.query.filter_by(mission_id=mission_id, task_id=task.id).first()
        if not link:
            raise ValidationError('The specified task does not belong to the provided mission.', 'mission_id')
        return task, link

    # ==================== Progress & rewards ====================

    def get_progress_summary(self, store_id: int) -> Dict[str, Any]:
        """Mission/task totals, completion rates and points for a store."""
        total_missions = len(self.get_available_missions(store_id))
        completed_missions = self.ledger.count_completed_missions(store_id)

        total_tasks = Task.query.filter_by(is_active=True).count()
        completed_tasks = self.ledger.count_completed_tasks(store_id)

        total_points = 0
        if self.points_enabled:
            total_points = self.points_ledger.get_balance(store_id)

        if total_points == 0:
            total_points = db.session.query(func.coalesce(func.sum(Task.points), 0)).join(
                TaskCompletion, TaskCompletion.task_id == Task.id
            ).filter(
                TaskCompletion.store_id == store_id,
                TaskCompletion.status == TaskCompletionStatus.COMPLETED.value,
            ).scalar() or 0

        return {
            'total_missions': total_missions,
            'completed_missions': completed_missions,
            'missions_completion_rate': _rate(completed_missions, total_missions),
            'total_tasks': total_tasks,
            'completed_tasks': completed_tasks,
            'tasks_completion_rate': _rate(completed_tasks, total_tasks),
            'total_points': int(total_points),
        }

    def get_store_rewards(self, store_id: int) -> List[Reward]:
        """Rewards of every mission the store has completed."""
        completed = select(StoreProgress.mission_id).where(
            StoreProgress.store_id == store_id,
            StoreProgress.status == ProgressStatus.COMPLETED.value,
        )
        return Reward.query.filter(Reward.mission_id.in_(completed)).order_by(Reward.mission_id, Reward.id).all()

    def get_store_badges(self, store_id: int) -> List[Dict[str, Any]]:
        """Badges earned by the store, with when they were earned."""
        rows = db.session.query(Badge, StoreBadge).join(
            StoreBadge, StoreBadge.badge_id == Badge.id
        ).filter(StoreBadge.store_id == store_id).order_by(StoreBadge.earned_at, Badge.id).all()

        badges = []
        for badge, store_badge in rows:
            data = badge.to_dict()
            data['earned_at'] = store_badge.earned_at.isoformat() if store_badge.earned_at else None
            badges.append(data)
        return badges

    def get_leaderboard(self, limit: int = 10) -> List[Dict[str, Any]]:
        """
        Stores ranked by points.

        Uses the points ledger balances when points are enabled, otherwise
        the sum of completed task points.
        """
        if self.points_enabled:
            rows = db.session.query(StorePoints.store_id, StorePoints.balance).order_by(
                StorePoints.balance.desc(), StorePoints.store_id
            ).limit(limit).all()
        else:
            points = func.sum(Task.points).label('points')
            rows = db.session.query(TaskCompletion.store_id, points).join(
                Task, Task.id == TaskCompletion.task_id
            ).filter(
                TaskCompletion.status == TaskCompletionStatus.COMPLETED.value
            ).group_by(TaskCompletion.store_id).order_by(points.desc(), TaskCompletion.store_id).limit(limit).all()

        return [
            {'rank': rank, 'store_id': store_id, 'points': int(points or 0)}
            for rank, (store_id, points) in enumerate(rows, start=1)
        ]

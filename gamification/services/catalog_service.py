"""
Catalog Service

Administrative management of the mission catalog: tasks, missions and
their task attachments, lockers, rules, rewards and badges.

Unknown ids raise the NotFoundError subclasses, bad input raises
ValidationError and duplicate keys raise DuplicateError.
"""

import logging
from typing import Any, Dict, List, Optional

from ..extensions import db
from ..models.catalog import (
    Task,
    Mission,
    MissionTask,
    Locker,
    Rule,
    Reward,
    Badge,
    RuleType,
    RewardType,
    LOCKER_CONDITION_TYPES,
    RULE_CONDITION_TYPES,
)
from ..utils.dates import parse_datetime
from ..utils.exceptions import (
    TaskNotFoundError,
    MissionNotFoundError,
    LockerNotFoundError,
    RuleNotFoundError,
    RewardNotFoundError,
    BadgeNotFoundError,
    NotFoundError,
    ValidationError,
    DuplicateError,
)
from .catalog_defaults import DEFAULT_BADGES, DEFAULT_TASKS, DEFAULT_MISSIONS

logger = logging.getLogger(__name__)

TASK_FIELDS = ('name', 'description', 'icon', 'points', 'event_name', 'event_payload_conditions', 'is_active')
MISSION_FIELDS = ('name', 'description', 'image', 'total_points', 'is_active', 'start_date', 'end_date', 'sort_order')
BADGE_FIELDS = ('name', 'description', 'image', 'is_active')


def _require(data: Dict[str, Any], *fields: str) -> None:
    for name in fields:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f"{name} is required", name)


def _non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field)
    if number < 0:
        raise ValidationError(f"{field} must not be negative", field)
    return number


def _json_object(value: Any, field: str) -> Optional[Dict[str, Any]]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValidationError(f"{field} must be an object", field)
    return value


def _datetime(value: Any, field: str):
    try:
        return parse_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 datetime", field)


class CatalogService:
    """Service for catalog administration."""

    # ==================== Tasks ====================

    def list_tasks(self, include_inactive: bool = True) -> List[Task]:
        query = Task.query
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.order_by(Task.id).all()

    def get_task(self, task_id: int) -> Task:
        task = db.session.get(Task, task_id)
        if not task:
            raise TaskNotFoundError(task_id)
        return task

    def create_task(self, data: Dict[str, Any]) -> Task:
        _require(data, 'key', 'name', 'event_name')
        if Task.query.filter_by(key=data['key']).first():
            raise DuplicateError('Task', f"key '{data['key']}'")

        task = Task(key=data['key'])
        self._apply_task_fields(task, data, defaults=True)
        db.session.add(task)
        db.session.commit()

        logger.info(f"Task created: {task.key} on {task.event_name}")
        return task

    def update_task(self, task_id: int, data: Dict[str, Any]) -> Task:
        task = self.get_task(task_id)
        if 'key' in data and data['key'] != task.key:
            _require(data, 'key')
            if Task.query.filter_by(key=data['key']).first():
                raise DuplicateError('Task', f"key '{data['key']}'")
            task.key = data['key']

        self._apply_task_fields(task, data)
        db.session.commit()
        return task

    def delete_task(self, task_id: int) -> None:
        task = self.get_task(task_id)
        key = task.key
        db.session.delete(task)
        db.session.commit()
        logger.info(f"Task deleted: {key}")

    def _apply_task_fields(self, task: Task, data: Dict[str, Any], defaults: bool = False) -> None:
        for name in TASK_FIELDS:
            if name not in data:
                continue
            value = data[name]
            if name == 'points':
                value = _non_negative_int(value, 'points')
            elif name == 'event_payload_conditions':
                value = _json_object(value, name)
            elif name in ('name', 'event_name'):
                _require(data, name)
            elif name == 'is_active':
                value = bool(value)
            setattr(task, name, value)

        if defaults:
            if task.points is None:
                task.points = 0
            if task.is_active is None:
                task.is_active = True

    # ==================== Missions ====================

    def list_missions(self) -> List[Mission]:
        return Mission.query.order_by(Mission.sort_order, Mission.id).all()

    def get_mission(self, mission_id: int) -> Mission:
        mission = db.session.get(Mission, mission_id)
        if not mission:
            raise MissionNotFoundError(mission_id)
        return mission

    def create_mission(self, data: Dict[str, Any]) -> Mission:
        """
        Create a mission.

        `tasks` may list task ids, or {task_id, sort_order} objects; a
        bare list is attached in the given order.
        """
        _require(data, 'key', 'name')
        if Mission.query.filter_by(key=data['key']).first():
            raise DuplicateError('Mission', f"key '{data['key']}'")

        mission = Mission(key=data['key'])
        self._apply_mission_fields(mission, data, defaults=True)
        db.session.add(mission)
        db.session.flush()

        if data.get('tasks'):
            self._sync_tasks(mission, data['tasks'])

        db.session.commit()
        logger.info(f"Mission created: {mission.key}")
        return mission

    def update_mission(self, mission_id: int, data: Dict[str, Any]) -> Mission:
        mission = self.get_mission(mission_id)
        if 'key' in data and data['key'] != mission.key:
            _require(data, 'key')
            if Mission.query.filter_by(key=data['key']).first():
                raise DuplicateError('Mission', f"key '{data['key']}'")
            mission.key = data['key']

        self._apply_mission_fields(mission, data)
        if 'tasks' in data:
            self._sync_tasks(mission, data['tasks'] or [])

        db.session.commit()
        return mission

    def delete_mission(self, mission_id: int) -> None:
        mission = self.get_mission(mission_id)
        key = mission.key
        db.session.delete(mission)
        db.session.commit()
        logger.info(f"Mission deleted: {key}")

    def attach_task(self, mission_id: int, task_id: int, sort_order: int = None) -> MissionTask:
        """Attach a task to a mission, or move it if already attached."""
        mission = self.get_mission(mission_id)
        task = self.get_task(task_id)

        link = MissionTask.query.filter_by(mission_id=mission.id, task_id=task.id).first()
        if sort_order is None:
            sort_order = link.sort_order if link else len(mission.task_links) + 1
        sort_order = _non_negative_int(sort_order, 'sort_order')

        if link:
            link.sort_order = sort_order
        else:
            link = MissionTask(mission_id=mission.id, task_id=task.id, sort_order=sort_order)
            db.session.add(link)

        db.session.commit()
        return link

    def detach_task(self, mission_id: int, task_id: int) -> None:
        link = MissionTask.query.filter_by(mission_id=mission_id, task_id=task_id).first()
        if not link:
            raise NotFoundError('MissionTask', f'{mission_id}/{task_id}')
        db.session.delete(link)
        db.session.commit()

    def _apply_mission_fields(self, mission: Mission, data: Dict[str, Any], defaults: bool = False) -> None:
        for name in MISSION_FIELDS:
            if name not in data:
                continue
            value = data[name]
            if name in ('total_points', 'sort_order'):
                value = _non_negative_int(value, name)
            elif name in ('start_date', 'end_date'):
                value = _datetime(value, name)
            elif name == 'name':
                _require(data, name)
            elif name == 'is_active':
                value = bool(value)
            setattr(mission, name, value)

        if mission.start_date and mission.end_date and mission.start_date >= mission.end_date:
            raise ValidationError('end_date must be after start_date', 'end_date')

        if defaults:
            mission.total_points = mission.total_points or 0
            mission.sort_order = mission.sort_order or 0
            if mission.is_active is None:
                mission.is_active = True

    def _sync_tasks(self, mission: Mission, tasks: List[Any]) -> None:
        """Replace the mission's task list."""
        if not isinstance(tasks, list):
            raise ValidationError('tasks must be a list', 'tasks')

        wanted = {}
        for position, entry in enumerate(tasks, start=1):
            if isinstance(entry, dict):
                task_id = entry.get('task_id')
                sort_order = entry.get('sort_order', position)
            else:
                task_id, sort_order = entry, position
            task = self.get_task(task_id)
            wanted[task.id] = _non_negative_int(sort_order, 'sort_order')

        for link in list(mission.task_links):
            if link.task_id not in wanted:
                mission.task_links.remove(link)
            else:
                link.sort_order = wanted.pop(link.task_id)

        for task_id, sort_order in wanted.items():
            mission.task_links.append(MissionTask(task_id=task_id, sort_order=sort_order))

    # ==================== Lockers ====================

    def get_locker(self, locker_id: int) -> Locker:
        locker = db.session.get(Locker, locker_id)
        if not locker:
            raise LockerNotFoundError(locker_id)
        return locker

    def create_locker(self, mission_id: int, data: Dict[str, Any]) -> Locker:
        mission = self.get_mission(mission_id)
        condition_type = self._condition_type(data, LOCKER_CONDITION_TYPES)

        locker = Locker(
            mission_id=mission.id,
            condition_type=condition_type,
            condition_payload=_json_object(data.get('condition_payload'), 'condition_payload') or {},
        )
        db.session.add(locker)
        db.session.commit()
        return locker

    def update_locker(self, locker_id: int, data: Dict[str, Any]) -> Locker:
        locker = self.get_locker(locker_id)
        if 'condition_type' in data:
            locker.condition_type = self._condition_type(data, LOCKER_CONDITION_TYPES)
        if 'condition_payload' in data:
            locker.condition_payload = _json_object(data['condition_payload'], 'condition_payload') or {}
        db.session.commit()
        return locker

    def delete_locker(self, locker_id: int) -> None:
        db.session.delete(self.get_locker(locker_id))
        db.session.commit()

    # ==================== Rules ====================

    def get_rule(self, rule_id: int) -> Rule:
        rule = db.session.get(Rule, rule_id)
        if not rule:
            raise RuleNotFoundError(rule_id)
        return rule

    def create_rule(self, mission_id: int, data: Dict[str, Any]) -> Rule:
        mission = self.get_mission(mission_id)
        rule = Rule(
            mission_id=mission.id,
            rule_type=self._rule_type(data),
            condition_type=self._condition_type(data, RULE_CONDITION_TYPES),
            condition_payload=_json_object(data.get('condition_payload'), 'condition_payload') or {},
        )
        db.session.add(rule)
        db.session.commit()
        return rule

    def update_rule(self, rule_id: int, data: Dict[str, Any]) -> Rule:
        rule = self.get_rule(rule_id)
        if 'rule_type' in data:
            rule.rule_type = self._rule_type(data)
        if 'condition_type' in data:
            rule.condition_type = self._condition_type(data, RULE_CONDITION_TYPES)
        if 'condition_payload' in data:
            rule.condition_payload = _json_object(data['condition_payload'], 'condition_payload') or {}
        db.session.commit()
        return rule

    def delete_rule(self, rule_id: int) -> None:
        db.session.delete(self.get_rule(rule_id))
        db.session.commit()

    # ==================== Rewards ====================

    def get_reward(self, reward_id: int) -> Reward:
        reward = db.session.get(Reward, reward_id)
        if not reward:
            raise RewardNotFoundError(reward_id)
        return reward

    def create_reward(self, mission_id: int, data: Dict[str, Any]) -> Reward:
        mission = self.get_mission(mission_id)
        _require(data, 'reward_value')
        reward = Reward(
            mission_id=mission.id,
            reward_type=self._reward_type(data),
            reward_value=str(data['reward_value']),
            reward_meta=_json_object(data.get('reward_meta'), 'reward_meta'),
        )
        self._validate_reward_value(reward)
        db.session.add(reward)
        db.session.commit()
        return reward

    def update_reward(self, reward_id: int, data: Dict[str, Any]) -> Reward:
        reward = self.get_reward(reward_id)
        if 'reward_type' in data:
            reward.reward_type = self._reward_type(data)
        if 'reward_value' in data:
            _require(data, 'reward_value')
            reward.reward_value = str(data['reward_value'])
        if 'reward_meta' in data:
            reward.reward_meta = _json_object(data['reward_meta'], 'reward_meta')
        self._validate_reward_value(reward)
        db.session.commit()
        return reward

    def delete_reward(self, reward_id: int) -> None:
        db.session.delete(self.get_reward(reward_id))
        db.session.commit()

    def _validate_reward_value(self, reward: Reward) -> None:
        if reward.reward_type == RewardType.POINTS.value:
            try:
                points = int(reward.reward_value)
            except ValueError:
                raise ValidationError('Points reward value must be an integer', 'reward_value')
            if points <= 0:
                raise ValidationError('Points reward value must be positive', 'reward_value')

    # ==================== Badges ====================

    def list_badges(self, include_inactive: bool = True) -> List[Badge]:
        query = Badge.query
        if not include_inactive:
            query = query.filter_by(is_active=True)
        return query.order_by(Badge.id).all()

    def get_badge(self, badge_id: int) -> Badge:
        badge = db.session.get(Badge, badge_id)
        if not badge:
            raise BadgeNotFoundError(badge_id)
        return badge

    def create_badge(self, data: Dict[str, Any]) -> Badge:
        _require(data, 'key', 'name')
        if Badge.query.filter_by(key=data['key']).first():
            raise DuplicateError('Badge', f"key '{data['key']}'")

        badge = Badge(
            key=data['key'],
            name=data['name'],
            description=data.get('description'),
            image=data.get('image'),
            is_active=bool(data.get('is_active', True)),
        )
        db.session.add(badge)
        db.session.commit()
        return badge

    def update_badge(self, badge_id: int, data: Dict[str, Any]) -> Badge:
        badge = self.get_badge(badge_id)
        for name in BADGE_FIELDS:
            if name in data:
                if name == 'name':
                    _require(data, name)
                setattr(badge, name, bool(data[name]) if name == 'is_active' else data[name])
        db.session.commit()
        return badge

    def delete_badge(self, badge_id: int) -> None:
        db.session.delete(self.get_badge(badge_id))
        db.session.commit()

    # ==================== Validation helpers ====================

    def _condition_type(self, data: Dict[str, Any], allowed) -> str:
        _require(data, 'condition_type')
        value = data['condition_type']
        if value not in {kind.value for kind in allowed}:
            raise ValidationError(f"Unsupported condition type: {value}", 'condition_type')
        return value

    def _rule_type(self, data: Dict[str, Any]) -> str:
        _require(data, 'rule_type')
        value = data['rule_type']
        if value not in {kind.value for kind in RuleType}:
            raise ValidationError(f"Unsupported rule type: {value}", 'rule_type')
        return value

    def _reward_type(self, data: Dict[str, Any]) -> str:
        _require(data, 'reward_type')
        value = data['reward_type']
        if value not in {kind.value for kind in RewardType}:
            raise ValidationError(f"Unsupported reward type: {value}", 'reward_type')
        return value

    # ==================== Defaults ====================

    def initialize_defaults(self) -> Dict[str, Any]:
        """
        Seed the default onboarding catalog.

        Idempotent by key: existing badges, tasks and missions are left
        as they are and their rewards/lockers are not duplicated.
        """
        badges_created = 0
        tasks_created = 0
        missions_created = 0

        for badge_data in DEFAULT_BADGES:
            if not Badge.query.filter_by(key=badge_data['key']).first():
                db.session.add(Badge(**badge_data))
                badges_created += 1

        tasks_by_key = {}
        for task_data in DEFAULT_TASKS:
            task = Task.query.filter_by(key=task_data['key']).first()
            if not task:
                task = Task(**task_data)
                db.session.add(task)
                tasks_created += 1
            tasks_by_key[task.key] = task

        db.session.flush()

        missions_by_key = {}
        for mission_data in DEFAULT_MISSIONS:
            mission = Mission.query.filter_by(key=mission_data['key']).first()
            if mission:
                missions_by_key[mission.key] = mission
                continue

            fields = {
                name: value for name, value in mission_data.items()
                if name not in ('tasks', 'requires', 'rewards')
            }
            mission = Mission(**fields)
            for position, task_key in enumerate(mission_data['tasks'], start=1):
                mission.task_links.append(MissionTask(task=tasks_by_key[task_key], sort_order=position))
            db.session.add(mission)
            db.session.flush()

            if mission_data['requires']:
                prerequisite = missions_by_key[mission_data['requires']]
                db.session.add(Locker(
                    mission_id=mission.id,
                    condition_type='mission_completion',
                    condition_payload={'mission_id': prerequisite.id},
                ))

            for reward_data in mission_data['rewards']:
                db.session.add(Reward(mission_id=mission.id, **reward_data))

            missions_by_key[mission.key] = mission
            missions_created += 1

        db.session.commit()

        logger.info(
            f"Catalog defaults initialized: {badges_created} badges, "
            f"{tasks_created} tasks, {missions_created} missions"
        )
        return {
            'badges_created': badges_created,
            'tasks_created': tasks_created,
            'missions_created': missions_created,
        }

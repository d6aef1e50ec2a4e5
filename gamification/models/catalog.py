"""
Catalog models for store missions.

Tasks, missions, lockers, rules, rewards and badges. These rows are
owned by administration; the progress engine only reads them.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from ..extensions import db


# ==================== Enums ====================

class ConditionType(str, Enum):
    """Condition kinds shared by lockers and rules."""
    MISSION_COMPLETION = 'mission_completion'
    TASKS_COMPLETION = 'tasks_completion'
    DATE = 'date'                # Lockers only: single unlock_date bound
    DATE_RANGE = 'date_range'    # Rules only: start_date..end_date inclusive
    CUSTOM = 'custom'


LOCKER_CONDITION_TYPES = frozenset({
    ConditionType.MISSION_COMPLETION,
    ConditionType.DATE,
    ConditionType.TASKS_COMPLETION,
    ConditionType.CUSTOM,
})

RULE_CONDITION_TYPES = frozenset({
    ConditionType.MISSION_COMPLETION,
    ConditionType.TASKS_COMPLETION,
    ConditionType.DATE_RANGE,
    ConditionType.CUSTOM,
})


class RuleType(str, Enum):
    """When a rule applies."""
    START = 'start'
    FINISH = 'finish'


class RewardType(str, Enum):
    """Kinds of mission rewards."""
    POINTS = 'points'
    BADGE = 'badge'
    COUPON = 'coupon'
    FEATURE_UNLOCK = 'feature_unlock'


# ==================== Payload matching ====================

_TRUE_STRINGS = frozenset({'1', 'true', 'yes', 'on'})
_FALSE_STRINGS = frozenset({'', '0', 'false', 'no', 'off'})


def _as_number(value: Any) -> Optional[Decimal]:
    """Finite numeric value of a number or numeric string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = Decimal(str(value))
    elif isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
    else:
        return None
    # NaN, sNaN and Infinity never equal anything
    return number if number.is_finite() else None


def loosely_equal(actual: Any, expected: Any) -> bool:
    """
    Compare an event payload value with a task condition value.

    Numbers and numeric strings compare by value ("1000" == 1000),
    booleans compare against their common string/number spellings.
    """
    if isinstance(actual, bool) or isinstance(expected, bool):
        if isinstance(actual, bool) and isinstance(expected, bool):
            return actual == expected
        flag, other = (actual, expected) if isinstance(actual, bool) else (expected, actual)
        if isinstance(other, str):
            lowered = other.strip().lower()
            if lowered in _TRUE_STRINGS:
                return flag is True
            if lowered in _FALSE_STRINGS:
                return flag is False
            return False
        number = _as_number(other)
        if number is not None:
            return flag == (number != 0)
        return False

    actual_number = _as_number(actual)
    expected_number = _as_number(expected)
    if actual_number is not None and expected_number is not None:
        return actual_number == expected_number

    if isinstance(actual, Decimal) or isinstance(expected, Decimal):
        return False
    return actual == expected


# ==================== Models ====================

class Task(db.Model):
    """A single trackable action, triggered by one event name."""

    __tablename__ = 'gamification_tasks'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)

    # Display
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    icon = db.Column(db.String(50))
    points = db.Column(db.Integer, default=0, nullable=False)

    # Trigger
    event_name = db.Column(db.String(100), nullable=False, index=True)
    event_payload_conditions = db.Column(db.JSON)  # {payload_key: expected_value}

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    mission_links = db.relationship(
        'MissionTask',
        back_populates='task',
        order_by='MissionTask.mission_id',
        cascade='all, delete-orphan',
    )

    def __repr__(self):
        return f'<Task {self.key} on {self.event_name}>'

    @property
    def missions(self) -> List['Mission']:
        """Missions this task belongs to."""
        return [link.mission for link in self.mission_links]

    def matches_payload(self, payload: Optional[Dict[str, Any]]) -> bool:
        """
        Check the event payload against the task's payload conditions.

        Every declared key must be present (and not None) in the payload
        and loosely equal to the expected value. No conditions always match.
        """
        conditions = self.event_payload_conditions or {}
        if not conditions:
            return True

        payload = payload or {}
        for key, expected in conditions.items():
            if payload.get(key) is None:
                return False
            if not loosely_equal(payload[key], expected):
                return False
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'key': self.key,
            'name': self.name,
            'description': self.description,
            'icon': self.icon,
            'points': self.points,
            'event_name': self.event_name,
            'event_payload_conditions': self.event_payload_conditions or {},
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Mission(db.Model):
    """An ordered group of tasks with an availability window."""

    __tablename__ = 'gamification_missions'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)

    # Display
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    image = db.Column(db.String(255))
    total_points = db.Column(db.Integer, default=0, nullable=False)

    # Availability
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    start_date = db.Column(db.DateTime)  # inclusive
    end_date = db.Column(db.DateTime)    # exclusive
    sort_order = db.Column(db.Integer, default=0, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    task_links = db.relationship(
        'MissionTask',
        back_populates='mission',
        order_by='MissionTask.sort_order',
        cascade='all, delete-orphan',
    )
    lockers = db.relationship('Locker', backref='mission', lazy='dynamic', cascade='all, delete-orphan')
    rules = db.relationship('Rule', backref='mission', lazy='dynamic', cascade='all, delete-orphan')
    rewards = db.relationship('Reward', backref='mission', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Mission {self.key}>'

    @property
    def tasks(self) -> List[Task]:
        """Attached tasks in mission sort order."""
        return [link.task for link in self.task_links]

    @property
    def task_count(self) -> int:
        return len(self.task_links)

    def is_available(self, now: datetime = None) -> bool:
        """Active and inside the [start_date, end_date) window."""
        now = now or datetime.utcnow()
        if not self.is_active:
            return False
        if self.start_date and now < self.start_date:
            return False
        if self.end_date and now >= self.end_date:
            return False
        return True

    @classmethod
    def available_query(cls, now: datetime = None):
        """Query for active missions inside their availability window, ordered."""
        now = now or datetime.utcnow()
        return cls.query.filter(
            cls.is_active.is_(True),
            db.or_(cls.start_date.is_(None), cls.start_date <= now),
            db.or_(cls.end_date.is_(None), cls.end_date > now),
        ).order_by(cls.sort_order, cls.id)

    def to_dict(self, include_tasks: bool = False):
        data = {
            'id': self.id,
            'key': self.key,
            'name': self.name,
            'description': self.description,
            'image': self.image,
            'total_points': self.total_points,
            'is_active': self.is_active,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'sort_order': self.sort_order,
        }
        if include_tasks:
            data['tasks'] = [link.to_dict() for link in self.task_links]
        return data


class MissionTask(db.Model):
    """Mission ↔ task association carrying the task's position in the mission."""

    __tablename__ = 'gamification_mission_tasks'

    id = db.Column(db.Integer, primary_key=True)
    mission_id = db.Column(
        db.Integer, db.ForeignKey('gamification_missions.id', ondelete='CASCADE'), nullable=False
    )
    task_id = db.Column(
        db.Integer, db.ForeignKey('gamification_tasks.id', ondelete='CASCADE'), nullable=False
    )
    sort_order = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    mission = db.relationship('Mission', back_populates='task_links')
    task = db.relationship('Task', back_populates='mission_links')

    __table_args__ = (
        db.UniqueConstraint('mission_id', 'task_id', name='unique_mission_task'),
    )

    def to_dict(self):
        data = self.task.to_dict() if self.task else {'id': self.task_id}
        data['sort_order'] = self.sort_order
        return data


class Locker(db.Model):
    """Gating condition controlling whether a mission is unlocked for a store."""

    __tablename__ = 'gamification_lockers'

    id = db.Column(db.Integer, primary_key=True)
    mission_id = db.Column(
        db.Integer, db.ForeignKey('gamification_missions.id', ondelete='CASCADE'), nullable=False, index=True
    )
    condition_type = db.Column(db.String(50), nullable=False)
    # mission_completion: {mission_id}, date: {unlock_date},
    # tasks_completion: {task_ids, required_count?}, custom: {handler, ...}
    condition_payload = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Locker {self.condition_type} mission={self.mission_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'mission_id': self.mission_id,
            'condition_type': self.condition_type,
            'condition_payload': self.condition_payload or {},
        }


class Rule(db.Model):
    """Start/finish rule for a mission, evaluated independently of lockers."""

    __tablename__ = 'gamification_rules'

    id = db.Column(db.Integer, primary_key=True)
    mission_id = db.Column(
        db.Integer, db.ForeignKey('gamification_missions.id', ondelete='CASCADE'), nullable=False, index=True
    )
    rule_type = db.Column(db.String(20), nullable=False)       # start, finish
    condition_type = db.Column(db.String(50), nullable=False)
    condition_payload = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Rule {self.rule_type}:{self.condition_type} mission={self.mission_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'mission_id': self.mission_id,
            'rule_type': self.rule_type,
            'condition_type': self.condition_type,
            'condition_payload': self.condition_payload or {},
        }


class Reward(db.Model):
    """Payoff granted once a store completes the mission."""

    __tablename__ = 'gamification_rewards'

    id = db.Column(db.Integer, primary_key=True)
    mission_id = db.Column(
        db.Integer, db.ForeignKey('gamification_missions.id', ondelete='CASCADE'), nullable=False, index=True
    )
    reward_type = db.Column(db.String(50), nullable=False)
    reward_value = db.Column(db.String(255), nullable=False)  # points amount, badge key, coupon code...
    reward_meta = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<Reward {self.reward_type}={self.reward_value} mission={self.mission_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'mission_id': self.mission_id,
            'reward_type': self.reward_type,
            'reward_value': self.reward_value,
            'reward_meta': self.reward_meta or {},
        }


class Badge(db.Model):
    """Badge definition, granted through badge rewards."""

    __tablename__ = 'gamification_badges'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    image = db.Column(db.String(255))
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    store_badges = db.relationship('StoreBadge', backref='badge', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Badge {self.key}>'

    def to_dict(self):
        return {
            'id': self.id,
            'key': self.key,
            'name': self.name,
            'description': self.description,
            'image': self.image,
            'is_active': self.is_active,
        }

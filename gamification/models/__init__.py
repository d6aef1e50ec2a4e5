"""
Database models for the store missions gamification service.
"""
from .catalog import (
    # Enums
    ConditionType,
    RuleType,
    RewardType,
    LOCKER_CONDITION_TYPES,
    RULE_CONDITION_TYPES,
    # Models
    Task,
    Mission,
    MissionTask,
    Locker,
    Rule,
    Reward,
    Badge,
    loosely_equal,
)
from .ledger import (
    TaskCompletionStatus,
    ProgressStatus,
    TaskCompletion,
    StoreProgress,
    StoreBadge,
    EventLog,
)
from .points import StorePoints, PointsTransaction

__all__ = [
    # Catalog
    'ConditionType',
    'RuleType',
    'RewardType',
    'LOCKER_CONDITION_TYPES',
    'RULE_CONDITION_TYPES',
    'Task',
    'Mission',
    'MissionTask',
    'Locker',
    'Rule',
    'Reward',
    'Badge',
    'loosely_equal',
    # Completion ledger
    'TaskCompletionStatus',
    'ProgressStatus',
    'TaskCompletion',
    'StoreProgress',
    'StoreBadge',
    'EventLog',
    # Points
    'StorePoints',
    'PointsTransaction',
]

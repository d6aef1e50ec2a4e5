"""
Shared fixtures for the gamification test suite.

Every test runs inside an app context against a fresh in-memory SQLite
database. `catalog` builds tasks, missions, lockers, rules, rewards and
badges; `ledger_rows` writes completion state directly.
"""
import itertools
from datetime import datetime
from decimal import Decimal

import pytest

from gamification import create_app
from gamification.extensions import db
from gamification.models import (
    Task,
    Mission,
    MissionTask,
    Locker,
    Rule,
    Reward,
    Badge,
    TaskCompletion,
    TaskCompletionStatus,
    StoreProgress,
    ProgressStatus,
)

STORE_ID = 42
OTHER_STORE_ID = 7


@pytest.fixture
def app():
    """Create application for testing."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store_headers():
    return {'X-Store-Id': str(STORE_ID)}


class CatalogFactory:
    """Builds committed catalog rows with unique keys."""

    def __init__(self):
        self._seq = itertools.count(1)

    def task(self, key=None, event_name='product_created', points=10, conditions=None, **kwargs):
        n = next(self._seq)
        task = Task(
            key=key or f'task-{n}',
            name=kwargs.pop('name', f'Task {n}'),
            event_name=event_name,
            points=points,
            event_payload_conditions=conditions,
            **kwargs
        )
        db.session.add(task)
        db.session.commit()
        return task

    def mission(self, tasks=(), key=None, **kwargs):
        n = next(self._seq)
        mission = Mission(
            key=key or f'mission-{n}',
            name=kwargs.pop('name', f'Mission {n}'),
            **kwargs
        )
        for position, task in enumerate(tasks, start=1):
            mission.task_links.append(MissionTask(task=task, sort_order=position))
        db.session.add(mission)
        db.session.commit()
        return mission

    def locker(self, mission, condition_type, payload=None):
        locker = Locker(mission_id=mission.id, condition_type=condition_type, condition_payload=payload or {})
        db.session.add(locker)
        db.session.commit()
        return locker

    def rule(self, mission, rule_type, condition_type, payload=None):
        rule = Rule(
            mission_id=mission.id,
            rule_type=rule_type,
            condition_type=condition_type,
            condition_payload=payload or {},
        )
        db.session.add(rule)
        db.session.commit()
        return rule

    def reward(self, mission, reward_type, value, meta=None):
        reward = Reward(mission_id=mission.id, reward_type=reward_type, reward_value=str(value), reward_meta=meta)
        db.session.add(reward)
        db.session.commit()
        return reward

    def badge(self, key, name=None):
        badge = Badge(key=key, name=name or key.replace('-', ' ').title())
        db.session.add(badge)
        db.session.commit()
        return badge


class LedgerRows:
    """Writes completion ledger rows directly, bypassing the engine."""

    def complete_task(self, store_id, task, mission):
        row = TaskCompletion(
            store_id=store_id,
            task_id=task.id,
            mission_id=mission.id,
            status=TaskCompletionStatus.COMPLETED.value,
            completed_at=datetime.utcnow(),
        )
        db.session.add(row)
        db.session.commit()
        return row

    def progress(self, store_id, mission, status, percentage='0.00'):
        row = StoreProgress(
            store_id=store_id,
            mission_id=mission.id,
            status=status,
            progress_percentage=Decimal(percentage),
            completed_at=datetime.utcnow() if status == ProgressStatus.COMPLETED.value else None,
        )
        db.session.add(row)
        db.session.commit()
        return row

    def complete_mission(self, store_id, mission):
        return self.progress(store_id, mission, ProgressStatus.COMPLETED.value, '100.00')


@pytest.fixture
def catalog(app):
    return CatalogFactory()


@pytest.fixture
def ledger_rows(app):
    return LedgerRows()

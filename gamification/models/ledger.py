"""
Completion ledger models.

Per-store task completion and mission progress records. Both tables are
keyed by a composite unique constraint so concurrent fetch-or-create
calls converge on one row.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from ..extensions import db


class TaskCompletionStatus(str, Enum):
    """TaskCompletion lifecycle: not_started -> completed | ignored."""
    NOT_STARTED = 'not_started'
    COMPLETED = 'completed'
    IGNORED = 'ignored'


class ProgressStatus(str, Enum):
    """StoreProgress lifecycle."""
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    IGNORED = 'ignored'


class TaskCompletion(db.Model):
    """Completion state of one task, inside one mission, for one store."""

    __tablename__ = 'gamification_task_completion'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    task_id = db.Column(
        db.Integer, db.ForeignKey('gamification_tasks.id', ondelete='CASCADE'), nullable=False
    )
    mission_id = db.Column(
        db.Integer, db.ForeignKey('gamification_missions.id', ondelete='CASCADE'), nullable=False
    )

    status = db.Column(db.String(20), default=TaskCompletionStatus.NOT_STARTED.value, nullable=False)
    completed_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    task = db.relationship('Task')
    mission = db.relationship('Mission')

    __table_args__ = (
        db.UniqueConstraint('store_id', 'task_id', 'mission_id', name='unique_store_task_mission'),
        db.Index('ix_task_completion_store_status', 'store_id', 'status'),
    )

    def __repr__(self):
        return f'<TaskCompletion store={self.store_id} task={self.task_id} mission={self.mission_id} {self.status}>'

    def is_completed(self) -> bool:
        return self.status == TaskCompletionStatus.COMPLETED.value

    def is_ignored(self) -> bool:
        return self.status == TaskCompletionStatus.IGNORED.value

    def is_terminal(self) -> bool:
        return self.is_completed() or self.is_ignored()

    def mark_completed(self, now: datetime = None) -> bool:
        """
        Transition not_started -> completed.

        Returns:
            True if the row transitioned, False if it was already terminal
        """
        if self.is_terminal():
            return False
        self.status = TaskCompletionStatus.COMPLETED.value
        self.completed_at = now or datetime.utcnow()
        return True

    def ignore(self) -> bool:
        """Transition not_started -> ignored. Completed rows stay completed."""
        if self.is_terminal():
            return self.is_ignored()
        self.status = TaskCompletionStatus.IGNORED.value
        return True

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'task_id': self.task_id,
            'mission_id': self.mission_id,
            'status': self.status,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class StoreProgress(db.Model):
    """Aggregate progress of one store through one mission."""

    __tablename__ = 'gamification_store_progress'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    mission_id = db.Column(
        db.Integer, db.ForeignKey('gamification_missions.id', ondelete='CASCADE'), nullable=False
    )

    status = db.Column(db.String(20), default=ProgressStatus.NOT_STARTED.value, nullable=False)
    progress_percentage = db.Column(db.Numeric(5, 2), default=Decimal('0.00'), nullable=False)
    completed_at = db.Column(db.DateTime)

    # Set in the same transaction that granted the mission's rewards
    rewards_granted_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    mission = db.relationship('Mission')

    __table_args__ = (
        db.UniqueConstraint('store_id', 'mission_id', name='unique_store_mission'),
        db.Index('ix_store_progress_store_status', 'store_id', 'status'),
    )

    def __repr__(self):
        return f'<StoreProgress store={self.store_id} mission={self.mission_id} {self.status} {self.progress_percentage}%>'

    def is_completed(self) -> bool:
        return self.status == ProgressStatus.COMPLETED.value

    def is_ignored(self) -> bool:
        return self.status == ProgressStatus.IGNORED.value

    def ignore(self) -> None:
        self.status = ProgressStatus.IGNORED.value

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'mission_id': self.mission_id,
            'status': self.status,
            'progress_percentage': float(self.progress_percentage or 0),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }


class StoreBadge(db.Model):
    """Badge earned by a store."""

    __tablename__ = 'gamification_store_badges'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    badge_id = db.Column(
        db.Integer, db.ForeignKey('gamification_badges.id', ondelete='CASCADE'), nullable=False
    )
    earned_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('store_id', 'badge_id', name='unique_store_badge'),
    )

    def __repr__(self):
        return f'<StoreBadge store={self.store_id} badge={self.badge_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'badge_id': self.badge_id,
            'badge': self.badge.to_dict() if self.badge else None,
            'earned_at': self.earned_at.isoformat() if self.earned_at else None,
        }


class EventLog(db.Model):
    """Raw inbound event, recorded before processing for audit and replay."""

    __tablename__ = 'gamification_events_log'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False)
    event_name = db.Column(db.String(100), nullable=False)
    event_payload = db.Column(db.JSON)

    processed = db.Column(db.Boolean, default=False, nullable=False)
    processed_at = db.Column(db.DateTime)
    result = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('ix_events_log_store_event_processed', 'store_id', 'event_name', 'processed'),
    )

    def __repr__(self):
        return f'<EventLog {self.id} {self.event_name} store={self.store_id}>'

    def mark_processed(self, result: dict = None) -> None:
        self.processed = True
        self.processed_at = datetime.utcnow()
        self.result = result or {}

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'event_name': self.event_name,
            'event_payload': self.event_payload or {},
            'processed': self.processed,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

"""
Store points models.

Default backing store for the points-ledger collaborator that mission
point rewards are credited to.
"""
from datetime import datetime
from ..extensions import db


class StorePoints(db.Model):
    """
    Current points balance for a store.

    One row per store (unique store_id), updated on every credit.
    The append-only PointsTransaction log is the audit trail.
    """
    __tablename__ = 'gamification_store_points'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, unique=True)

    balance = db.Column(db.Integer, default=0, nullable=False)
    lifetime_earned = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<StorePoints store={self.store_id} pts={self.balance}>'

    def to_dict(self):
        return {
            'store_id': self.store_id,
            'balance': self.balance,
            'lifetime_earned': self.lifetime_earned,
        }


class PointsTransaction(db.Model):
    """
    Tracks every points credit applied to a store.

    Used for:
    - Mission point rewards
    - Points clipped by the level cap (requested vs. credited)
    """
    __tablename__ = 'gamification_points_transactions'

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)

    points = db.Column(db.Integer, nullable=False)            # Credited amount
    requested_points = db.Column(db.Integer, nullable=False)  # Before the level cap
    reason = db.Column(db.String(500))

    # Source tracking
    mission_id = db.Column(db.Integer, db.ForeignKey('gamification_missions.id', ondelete='SET NULL'))
    reward_id = db.Column(db.Integer, db.ForeignKey('gamification_rewards.id', ondelete='SET NULL'))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<PointsTransaction {self.id}: {self.points} pts for store {self.store_id}>'

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'points': self.points,
            'requested_points': self.requested_points,
            'reason': self.reason,
            'mission_id': self.mission_id,
            'reward_id': self.reward_id,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

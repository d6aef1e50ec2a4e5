"""
Points Ledger

Default implementation of the "credit points to a store" collaborator used
by mission point rewards. Balances live in StorePoints, each credit is
recorded as a PointsTransaction.

Another ledger (an external loyalty/levelling system) can be plugged in by
passing any object with `credit()` and `get_balance()` to the reward engine.
"""

import logging
from typing import Optional

from ..extensions import db
from ..models.points import StorePoints, PointsTransaction
from .ledger_service import get_or_create

logger = logging.getLogger(__name__)


class PointsLedger:
    """Interface for the points collaborator."""

    def credit(
        self,
        store_id: int,
        amount: int,
        reason: str,
        mission_id: int = None,
        reward_id: int = None,
        requested: int = None,
    ) -> int:
        """Credit `amount` points to the store. Returns the new balance."""
        raise NotImplementedError

    def get_balance(self, store_id: int) -> int:
        raise NotImplementedError


class StorePointsLedger(PointsLedger):
    """Points ledger backed by the gamification_store_points table."""

    def get_account(self, store_id: int, lock: bool = False) -> StorePoints:
        account, _ = get_or_create(
            StorePoints,
            defaults={'balance': 0, 'lifetime_earned': 0},
            lock=lock,
            store_id=store_id,
        )
        return account

    def get_balance(self, store_id: int) -> int:
        account = StorePoints.query.filter_by(store_id=store_id).first()
        return account.balance if account else 0

    def credit(
        self,
        store_id: int,
        amount: int,
        reason: str,
        mission_id: int = None,
        reward_id: int = None,
        requested: Optional[int] = None,
    ) -> int:
        """
        Credit points and append a transaction.

        Does not commit; the caller's transaction owns the write.

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError('Points amount must not be negative')

        account = self.get_account(store_id, lock=True)
        account.balance = (account.balance or 0) + amount
        account.lifetime_earned = (account.lifetime_earned or 0) + amount

        db.session.add(PointsTransaction(
            store_id=store_id,
            points=amount,
            requested_points=amount if requested is None else requested,
            reason=reason,
            mission_id=mission_id,
            reward_id=reward_id,
        ))
        db.session.flush()

        logger.info(f"Points credited: store {store_id} +{amount} pts ({reason}), balance {account.balance}")
        return account.balance

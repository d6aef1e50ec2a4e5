"""
Unlock Resolver

A mission is unlocked for a store when every one of its lockers holds.
Missions without lockers are always unlocked.
"""

import logging
from typing import List, Optional

from ..extensions import db
from ..models.catalog import Mission, Locker, LOCKER_CONDITION_TYPES
from .conditions import ConditionEvaluator

logger = logging.getLogger(__name__)


class UnlockResolver:
    """Decides whether missions are unlocked for a store."""

    def __init__(self, evaluator: ConditionEvaluator = None):
        self.evaluator = evaluator or ConditionEvaluator()

    def get_lockers(self, mission: Mission) -> List[Locker]:
        return mission.lockers.order_by(Locker.id).all()

    def is_unlocked(self, mission_id: int, store_id: int) -> bool:
        """Unknown missions are reported locked."""
        mission = db.session.get(Mission, mission_id)
        if not mission:
            return False
        return self.is_mission_unlocked(mission, store_id)

    def is_mission_unlocked(self, mission: Mission, store_id: int) -> bool:
        locker = self.first_failing_locker(mission, store_id)
        if locker is not None:
            logger.debug(f"Mission {mission.key} locked for store {store_id} by {locker!r}")
            return False
        return True

    def first_failing_locker(self, mission: Mission, store_id: int) -> Optional[Locker]:
        """The first locker that does not hold, reported as `locked_by` next to a mission."""
        for locker in self.get_lockers(mission):
            if not self.evaluator.evaluate(
                locker.condition_type,
                locker.condition_payload,
                store_id,
                allowed=LOCKER_CONDITION_TYPES,
            ):
                return locker
        return None

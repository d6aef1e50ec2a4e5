"""
Reward Grant Engine

Processes the rewards of a completed mission for a store.

Each reward is dispatched by kind to a handler and runs in its own
SAVEPOINT: one failing reward is logged and rolled back on its own, the
others keep their effects. Kinds:
- points: credited to the points ledger (multiplier, optional level cap)
- badge: StoreBadge association, idempotent
- coupon / feature_unlock: delegated to collaborators
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models.catalog import Badge, Mission, Reward, RewardType
from ..models.ledger import StoreBadge, StoreProgress, ProgressStatus
from .points_ledger import PointsLedger, StorePointsLedger

logger = logging.getLogger(__name__)


class RewardGrantError(Exception):
    """A reward could not be granted. Caught per reward by the engine."""
    pass


# handler(reward, mission, store_id) -> None, raising RewardGrantError on failure
RewardHandler = Callable[[Reward, Mission, int], None]


@dataclass
class RewardConfig:
    """Points settings for mission rewards."""
    points_multiplier: int = 1
    level_cap_enabled: bool = False
    level_cap: int = 100
    points_enabled: bool = True

    @classmethod
    def from_app_config(cls, config: Mapping[str, Any]) -> 'RewardConfig':
        return cls(
            points_multiplier=int(config.get('GAMIFICATION_POINTS_MULTIPLIER', 1)),
            level_cap_enabled=bool(config.get('GAMIFICATION_LEVEL_CAP_ENABLED', False)),
            level_cap=int(config.get('GAMIFICATION_LEVEL_CAP', 100)),
            points_enabled=bool(config.get('GAMIFICATION_POINTS_ENABLED', True)),
        )


@dataclass
class RewardOutcome:
    reward: Reward
    mission: Mission
    success: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'reward_id': self.reward.id,
            'reward_type': self.reward.reward_type,
            'reward_value': self.reward.reward_value,
            'mission_id': self.mission.id,
            'mission_name': self.mission.name,
        }
        if self.error:
            data['error'] = self.error
        return data


@dataclass
class RewardGrantReport:
    """Result of granting every reward of one mission."""
    mission: Mission
    store_id: int
    eligible: bool = True
    granted: List[RewardOutcome] = field(default_factory=list)
    failed: List[RewardOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.eligible and not self.failed


class CouponIssuer:
    """Coupon collaborator. The default only records the request."""

    def issue(self, store_id: int, code: str, meta: Dict[str, Any], mission: Mission) -> bool:
        logger.info(f"Coupon {code} issued to store {store_id} for mission {mission.key} {meta or {}}")
        return True


class FeatureUnlocker:
    """Feature-flag collaborator. The default only records the request."""

    def unlock(self, store_id: int, feature: str, meta: Dict[str, Any], mission: Mission) -> bool:
        logger.info(f"Feature {feature} unlocked for store {store_id} by mission {mission.key}")
        return True


class RewardGrantEngine:
    """
    Grants mission rewards to stores.

    Usage:
        engine = RewardGrantEngine(RewardConfig.from_app_config(current_app.config))
        report = engine.grant(mission, store_id)
    """

    def __init__(
        self,
        config: RewardConfig = None,
        points_ledger: PointsLedger = None,
        coupon_issuer: CouponIssuer = None,
        feature_unlocker: FeatureUnlocker = None,
    ):
        self.config = config or RewardConfig()
        self.points_ledger = points_ledger or StorePointsLedger()
        self.coupon_issuer = coupon_issuer or CouponIssuer()
        self.feature_unlocker = feature_unlocker or FeatureUnlocker()
        self._handlers: Dict[str, RewardHandler] = {
            RewardType.POINTS.value: self._grant_points,
            RewardType.BADGE.value: self._grant_badge,
            RewardType.COUPON.value: self._grant_coupon,
            RewardType.FEATURE_UNLOCK.value: self._grant_feature_unlock,
        }

    def register_handler(self, reward_type: str, handler: RewardHandler) -> None:
        """Add or replace the handler for a reward kind."""
        self._handlers[reward_type] = handler

    # ==================== Granting ====================

    def grant_rewards(self, mission: Mission, store_id: int) -> bool:
        """True only if the mission is completed for the store and every reward succeeded."""
        return self.grant(mission, store_id).success

    def grant(self, mission: Mission, store_id: int) -> RewardGrantReport:
        """
        Process every reward of the mission for the store.

        Nothing happens unless StoreProgress for (store, mission) is
        completed. Does not commit; the caller's transaction owns it.
        """
        report = RewardGrantReport(mission=mission, store_id=store_id)

        progress = StoreProgress.query.filter_by(store_id=store_id, mission_id=mission.id).first()
        if not progress or progress.status != ProgressStatus.COMPLETED.value:
            logger.warning(f"Rewards for mission {mission.key} requested but store {store_id} has not completed it")
            report.eligible = False
            return report

        for reward in mission.rewards.order_by(Reward.id).all():
            outcome = self._grant_one(reward, mission, store_id)
            if outcome.success:
                report.granted.append(outcome)
            else:
                report.failed.append(outcome)

        if report.failed:
            logger.warning(
                f"Mission {mission.key} for store {store_id}: "
                f"{len(report.failed)} of {len(report.failed) + len(report.granted)} rewards failed"
            )
        return report

    def _grant_one(self, reward: Reward, mission: Mission, store_id: int) -> RewardOutcome:
        handler = self._handlers.get(reward.reward_type)
        if handler is None:
            logger.error(f"No handler for reward type '{reward.reward_type}' (reward {reward.id})")
            return RewardOutcome(reward, mission, False, f"Unknown reward type: {reward.reward_type}")

        try:
            with db.session.begin_nested():
                handler(reward, mission, store_id)
        except RewardGrantError as e:
            logger.warning(f"Reward {reward.id} ({reward.reward_type}) not granted to store {store_id}: {e}")
            return RewardOutcome(reward, mission, False, str(e))
        except Exception as e:
            logger.error(f"Reward {reward.id} ({reward.reward_type}) failed for store {store_id}: {e}")
            return RewardOutcome(reward, mission, False, str(e))

        return RewardOutcome(reward, mission, True)

    # ==================== Reward kinds ====================

    def _grant_points(self, reward: Reward, mission: Mission, store_id: int) -> None:
        try:
            points = int(str(reward.reward_value).strip())
        except (TypeError, ValueError):
            raise RewardGrantError(f"Invalid points value: {reward.reward_value!r}")
        if points <= 0:
            raise RewardGrantError(f"Points value must be positive: {points}")

        if not self.config.points_enabled:
            logger.debug(f"Points disabled, skipping {points} pts for store {store_id}")
            return

        amount = points * self.config.points_multiplier
        credited = amount

        if self.config.level_cap_enabled:
            balance = self.points_ledger.get_balance(store_id)
            credited = min(amount, max(self.config.level_cap - balance, 0))
            if credited == 0:
                logger.info(f"Store {store_id} at level cap {self.config.level_cap}, no points credited")
                return

        self.points_ledger.credit(
            store_id,
            credited,
            reason=f'Completed mission: {mission.name}',
            mission_id=mission.id,
            reward_id=reward.id,
            requested=amount,
        )

    def _grant_badge(self, reward: Reward, mission: Mission, store_id: int) -> None:
        badge = Badge.query.filter_by(key=reward.reward_value).first()
        if not badge:
            raise RewardGrantError(f"Badge not found: {reward.reward_value}")

        existing = StoreBadge.query.filter_by(store_id=store_id, badge_id=badge.id).first()
        if existing:
            return

        try:
            with db.session.begin_nested():
                db.session.add(StoreBadge(store_id=store_id, badge_id=badge.id))
        except IntegrityError:
            # Awarded concurrently
            logger.info(f"Badge {badge.key} already awarded to store {store_id}")
            return

        logger.info(f"Badge {badge.key} awarded to store {store_id}")

    def _grant_coupon(self, reward: Reward, mission: Mission, store_id: int) -> None:
        if not self.coupon_issuer.issue(store_id, reward.reward_value, reward.reward_meta or {}, mission):
            raise RewardGrantError(f"Coupon {reward.reward_value} could not be issued")

    def _grant_feature_unlock(self, reward: Reward, mission: Mission, store_id: int) -> None:
        if not self.feature_unlocker.unlock(store_id, reward.reward_value, reward.reward_meta or {}, mission):
            raise RewardGrantError(f"Feature {reward.reward_value} could not be unlocked")

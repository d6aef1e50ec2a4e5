"""
Business logic for store missions.
"""
from .gamification_service import GamificationService
from .catalog_service import CatalogService
from .progress_engine import ProgressEngine, EventResult
from .reward_service import RewardConfig, RewardGrantEngine, RewardGrantReport
from .conditions import ConditionEvaluator
from .unlock_resolver import UnlockResolver
from .rule_resolver import RuleResolver
from .ledger_service import LedgerService
from .points_ledger import PointsLedger, StorePointsLedger

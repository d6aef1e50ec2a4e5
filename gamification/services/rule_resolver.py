"""
Rule Resolver

Start and finish rules for missions. Rules are an independent signal from
lockers and from the engine's percentage-based completion; the read path
exposes them as `can_start` / `rules_completed` flags.
"""

from typing import List

from ..models.catalog import Mission, Rule, RuleType, RULE_CONDITION_TYPES
from .conditions import ConditionEvaluator
from .ledger_service import LedgerService


class RuleResolver:
    """Evaluates mission start/finish rules for a store."""

    def __init__(self, evaluator: ConditionEvaluator = None, ledger: LedgerService = None):
        self.evaluator = evaluator or ConditionEvaluator()
        self.ledger = ledger or LedgerService()

    def get_start_rules(self, mission: Mission) -> List[Rule]:
        return mission.rules.filter_by(rule_type=RuleType.START.value).order_by(Rule.id).all()

    def get_finish_rules(self, mission: Mission) -> List[Rule]:
        return mission.rules.filter_by(rule_type=RuleType.FINISH.value).order_by(Rule.id).all()

    def can_start(self, mission: Mission, store_id: int) -> bool:
        """True when there are no start rules or all of them hold."""
        return self._all_hold(self.get_start_rules(mission), store_id)

    def is_completed(self, mission: Mission, store_id: int) -> bool:
        """
        Rule-based completion.

        Without finish rules the mission counts as completed once it has
        tasks and all of them are completed for the store.
        """
        finish_rules = self.get_finish_rules(mission)
        if not finish_rules:
            total = self.ledger.total_task_count(mission.id)
            return total > 0 and self.ledger.completed_task_count(store_id, mission.id) >= total
        return self._all_hold(finish_rules, store_id)

    def _all_hold(self, rules: List[Rule], store_id: int) -> bool:
        return all(
            self.evaluator.evaluate(
                rule.condition_type,
                rule.condition_payload,
                store_id,
                allowed=RULE_CONDITION_TYPES,
            )
            for rule in rules
        )
